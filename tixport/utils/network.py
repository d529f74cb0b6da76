"""Helpers for working out who is calling the API."""

from __future__ import annotations

import ipaddress

from fastapi import Request

from ..geo import is_local_ip


def _canonical_ip(value: str | None) -> str | None:
    """Return ``value`` as a canonical IP string, or ``None`` when it is not one."""

    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def _forwarded_for(request: Request) -> str | None:
    header = request.headers.get("X-Forwarded-For")
    if not header:
        return None
    return _canonical_ip(header.split(",")[0])


def get_client_ip(request: Request) -> str:
    """Return the originating client IP address for a request.

    The storefront runs behind a reverse proxy on a private network, so
    ``X-Forwarded-For`` is only believed when the direct peer is loopback, in
    a private range, or not an IP at all (a unix socket or test transport).
    Returns ``"unknown"`` when no address can be determined.
    """

    if request.client is None or not request.client.host:
        return "unknown"

    peer = _canonical_ip(request.client.host)
    if peer is not None and not is_local_ip(peer):
        return peer
    return _forwarded_for(request) or peer or "unknown"
