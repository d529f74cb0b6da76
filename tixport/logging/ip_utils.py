"""Policies for how client addresses appear in logs."""

from __future__ import annotations

import ipaddress
import os
from typing import Optional

# Prefix kept per IP version when anonymising.
_ANONYMIZED_PREFIX = {4: 24, 6: 64}
_MODES = {"full", "anonymized", "off"}


def anonymize_ip(ip: Optional[str], mode: Optional[str] = None) -> Optional[str]:
    """Return ``ip`` formatted for logging according to ``LOG_IP_MODE``.

    ``anonymized`` (the default) keeps the /24 (IPv4) or /64 (IPv6) network,
    ``full`` keeps the address and ``off`` drops it. Unparseable input is
    logged as ``"unknown"``.
    """

    selected = (mode or os.getenv("LOG_IP_MODE") or "anonymized").lower()
    if selected not in _MODES:
        selected = "anonymized"
    if selected == "off":
        return None

    try:
        parsed = ipaddress.ip_address(ip or "")
    except ValueError:
        return "unknown"

    if selected == "full":
        return str(parsed)
    network = ipaddress.ip_network(
        f"{parsed}/{_ANONYMIZED_PREFIX[parsed.version]}", strict=False
    )
    return network.with_prefixlen
