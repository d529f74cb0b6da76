"""Coordinate resolution for location scoped event search.

Resolution order for a request:

1. coordinates supplied by the browser (``source="browser"``),
2. a lookup of the client IP in the local GeoIP database (``source="geoip"``),
3. nothing, in which case callers search without a location filter.

Nothing in here performs network I/O; the GeoIP database is read from disk
once at startup and shared read-only across requests.
"""

from __future__ import annotations

import ipaddress
import logging
import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Final, Literal, Protocol

import geoip2.database
import geoip2.errors

from .metrics import increment_coordinate_resolutions

logger = logging.getLogger(__name__)

CoordinateSource = Literal["browser", "geoip"]
CoordinateAccuracy = Literal["high", "medium"]

DEFAULT_RADIUS_MILES: Final[int] = 50
HEALTH_CHECK_IP: Final[str] = "8.8.8.8"

_LOCATION_PARAM_KEYS: Final[frozenset[str]] = frozenset({"lat", "lon", "within"})

_LOCAL_NETWORKS: Final[
    tuple[ipaddress.IPv4Network | ipaddress.IPv6Network, ...]
] = (
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
)


@dataclass(frozen=True)
class GeoRecord:
    """Location data returned by a :class:`GeoLookup`."""

    lat: float | None = None
    lon: float | None = None
    city: str | None = None
    region: str | None = None
    country: str | None = None
    timezone: str | None = None


class GeoLookup(Protocol):
    def lookup(self, ip: str) -> GeoRecord | None: ...


class NullGeoLookup:
    """Lookup used when no GeoIP database is configured."""

    def lookup(self, ip: str) -> GeoRecord | None:
        return None


class GeoIP2Lookup:
    """Read locations from a MaxMind City database on local disk."""

    def __init__(self, database_path: str) -> None:
        self._reader = geoip2.database.Reader(database_path)

    def lookup(self, ip: str) -> GeoRecord | None:
        try:
            response = self._reader.city(ip)
        except geoip2.errors.AddressNotFoundError:
            return None
        return GeoRecord(
            lat=response.location.latitude,
            lon=response.location.longitude,
            city=response.city.name,
            region=response.subdivisions.most_specific.iso_code,
            country=response.country.iso_code,
            timezone=response.location.time_zone,
        )

    def close(self) -> None:
        self._reader.close()


@dataclass(frozen=True)
class ResolvedCoordinate:
    lat: float
    lon: float
    source: CoordinateSource
    accuracy: CoordinateAccuracy
    city: str | None = None
    region: str | None = None
    country: str | None = None
    timezone: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return the coordinate as a mapping without unset enrichment fields."""

        return {key: value for key, value in asdict(self).items() if value is not None}


def validate_coordinates(lat: Any, lon: Any) -> tuple[float, float] | None:
    """Return ``(lat, lon)`` as floats when both are numeric and in range."""

    try:
        lat_value = float(lat)
        lon_value = float(lon)
    except (TypeError, ValueError):
        return None
    if math.isnan(lat_value) or math.isnan(lon_value):
        return None
    if not (-90.0 <= lat_value <= 90.0) or not (-180.0 <= lon_value <= 180.0):
        return None
    return lat_value, lon_value


def _parse_ip(ip: Any) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if not ip or not isinstance(ip, str):
        return None
    try:
        return ipaddress.ip_address(ip.strip())
    except ValueError:
        return None


def _strip_ip(ip: Any) -> Any:
    return ip.strip() if isinstance(ip, str) else ip


def is_valid_ip(ip: Any) -> bool:
    """Return ``True`` for an IPv4 dotted quad or an IPv6 literal."""

    return _parse_ip(ip) is not None


def is_local_ip(ip: Any) -> bool:
    """Return ``True`` when ``ip`` is empty, loopback or in a private range."""

    if not ip:
        return True
    if isinstance(ip, str) and ip.strip().lower() == "localhost":
        return True
    parsed = _parse_ip(ip)
    if parsed is None:
        return False
    return any(parsed in network for network in _LOCAL_NETWORKS)


def build_tevo_params(
    coordinate: ResolvedCoordinate | None,
    radius_miles: int | float = DEFAULT_RADIUS_MILES,
    extra_params: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Return Ticket Evolution event search parameters for ``coordinate``.

    ``lat``, ``lon`` and ``within`` are added together or not at all; the
    upstream API rejects a radius without a centre point.
    """

    params: dict[str, Any] = {"only_with_available_tickets": True}
    for key, value in (extra_params or {}).items():
        if key in _LOCATION_PARAM_KEYS:
            continue
        params[key] = value

    if coordinate is not None:
        params.update(lat=coordinate.lat, lon=coordinate.lon, within=radius_miles)
    return params


class CoordinateResolver:
    """Resolve a single best-effort coordinate for a request."""

    def __init__(self, lookup: GeoLookup) -> None:
        self._lookup = lookup

    def close(self) -> None:
        """Release the lookup's database handle, if it holds one."""

        close = getattr(self._lookup, "close", None)
        if callable(close):
            close()

    def resolve_coordinates(
        self,
        lat: Any = None,
        lon: Any = None,
        ip: str | None = None,
    ) -> ResolvedCoordinate | None:
        ip = _strip_ip(ip)
        if lat is not None and lon is not None:
            validated = validate_coordinates(lat, lon)
            if validated is not None:
                increment_coordinate_resolutions("browser")
                return ResolvedCoordinate(
                    lat=validated[0],
                    lon=validated[1],
                    source="browser",
                    accuracy="high",
                )
            logger.warning(
                "Ignoring invalid browser coordinates",
                extra={"event_action": "browser_coordinates_invalid", "lat": lat, "lon": lon},
            )

        if ip and is_valid_ip(ip):
            resolved = self.resolve_from_ip(ip)
            if resolved is not None:
                increment_coordinate_resolutions("geoip")
                return resolved

        logger.info(
            "No coordinates resolved; searching without location filter",
            extra={"event_action": "coordinates_unresolved"},
        )
        increment_coordinate_resolutions("none")
        return None

    def resolve_from_ip(self, ip: str) -> ResolvedCoordinate | None:
        """Look ``ip`` up in the GeoIP database and validate the result."""

        ip = _strip_ip(ip)
        if is_local_ip(ip):
            logger.debug("Skipping GeoIP lookup for local address")
            return None

        try:
            record = self._lookup.lookup(ip)
        except Exception as exc:  # noqa: BLE001 - lookups are best effort
            logger.error(
                "GeoIP lookup failed",
                extra={
                    "event_action": "geoip_lookup_error",
                    "error_type": type(exc).__name__,
                    "error_message": str(exc)[:256],
                },
            )
            return None

        if record is None or record.lat is None or record.lon is None:
            logger.info("GeoIP lookup found no coordinates", extra={"event_action": "geoip_miss"})
            return None

        validated = validate_coordinates(record.lat, record.lon)
        if validated is None:
            logger.warning(
                "GeoIP database returned out of range coordinates",
                extra={
                    "event_action": "geoip_coordinates_invalid",
                    "lat": record.lat,
                    "lon": record.lon,
                },
            )
            return None

        return ResolvedCoordinate(
            lat=validated[0],
            lon=validated[1],
            source="geoip",
            accuracy="medium",
            city=record.city or None,
            region=record.region or None,
            country=record.country or None,
            timezone=record.timezone or None,
        )

    def get_country_from_ip(self, ip: str | None) -> str | None:
        """Return the ISO country code for ``ip`` when the database knows it."""

        ip = _strip_ip(ip)
        if not ip or is_local_ip(ip):
            return None
        try:
            record = self._lookup.lookup(ip)
        except Exception as exc:  # noqa: BLE001 - lookups are best effort
            logger.error(
                "GeoIP country lookup failed",
                extra={
                    "event_action": "geoip_country_error",
                    "error_type": type(exc).__name__,
                    "error_message": str(exc)[:256],
                },
            )
            return None
        if record is None or not record.country:
            return None
        return record.country

    def health_check(self) -> dict[str, Any]:
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            record = self._lookup.lookup(HEALTH_CHECK_IP)
        except Exception as exc:  # noqa: BLE001 - reported in the payload
            return {
                "status": "unhealthy",
                "message": "Coordinate resolver error",
                "error": str(exc),
                "timestamp": timestamp,
            }
        found = record is not None and validate_coordinates(record.lat, record.lon) is not None
        return {
            "status": "healthy",
            "message": "Coordinate resolver is operational",
            "geoip_database": type(self._lookup).__name__,
            "test_lookup": "success" if found else "failed",
            "timestamp": timestamp,
        }


def create_geo_lookup(database_path: str | None) -> GeoLookup:
    """Open the GeoIP database at ``database_path`` or fall back to no lookups."""

    if not database_path:
        logger.warning(
            "GEOIP_DATABASE_PATH is not set; IP based coordinate resolution is disabled",
            extra={"event_action": "geoip_disabled"},
        )
        return NullGeoLookup()
    return GeoIP2Lookup(database_path)


__all__ = [
    "CoordinateResolver",
    "GeoIP2Lookup",
    "GeoLookup",
    "GeoRecord",
    "NullGeoLookup",
    "ResolvedCoordinate",
    "build_tevo_params",
    "create_geo_lookup",
    "is_local_ip",
    "is_valid_ip",
    "validate_coordinates",
]
