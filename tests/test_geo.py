import logging
from types import SimpleNamespace

import geoip2.database
import geoip2.errors
import pytest

from .conftest import FakeGeoLookup
from tixport.geo import (
    CoordinateResolver,
    GeoIP2Lookup,
    GeoRecord,
    NullGeoLookup,
    ResolvedCoordinate,
    build_tevo_params,
    create_geo_lookup,
    is_local_ip,
    is_valid_ip,
    validate_coordinates,
)

NEW_YORK = GeoRecord(
    lat=40.7128,
    lon=-74.006,
    city="New York",
    region="NY",
    country="US",
    timezone="America/New_York",
)


def test_browser_coordinates_win_over_ip(geo_lookup, resolver):
    geo_lookup.record = NEW_YORK

    resolved = resolver.resolve_coordinates(lat="34.05", lon="-118.24", ip="8.8.8.8")

    assert resolved == ResolvedCoordinate(lat=34.05, lon=-118.24, source="browser", accuracy="high")
    assert geo_lookup.calls == []


def test_invalid_browser_coordinates_fall_back_to_geoip(geo_lookup, resolver, caplog):
    geo_lookup.record = NEW_YORK
    caplog.set_level(logging.WARNING)

    resolved = resolver.resolve_coordinates(lat="91", lon="0", ip="8.8.8.8")

    assert resolved is not None
    assert resolved.source == "geoip"
    assert resolved.accuracy == "medium"
    assert resolved.city == "New York"
    assert resolved.country == "US"
    assert geo_lookup.calls == ["8.8.8.8"]
    assert any(r.message == "Ignoring invalid browser coordinates" for r in caplog.records)


def test_only_one_browser_coordinate_is_ignored(geo_lookup, resolver):
    assert resolver.resolve_coordinates(lat="40.7", lon=None) is None
    assert geo_lookup.calls == []


@pytest.mark.parametrize(("lat", "lon"), [("abc", "1"), ("nan", "0"), ("0", "181"), ("-90.5", "0")])
def test_bad_browser_coordinates_without_ip_resolve_to_none(resolver, lat, lon):
    assert resolver.resolve_coordinates(lat=lat, lon=lon) is None


def test_boundary_coordinates_are_valid(resolver):
    resolved = resolver.resolve_coordinates(lat="-90", lon="180")
    assert (resolved.lat, resolved.lon) == (-90.0, 180.0)


def test_nothing_supplied_resolves_to_none(geo_lookup, resolver):
    assert resolver.resolve_coordinates() is None
    assert geo_lookup.calls == []


def test_invalid_ip_is_not_looked_up(geo_lookup, resolver):
    geo_lookup.record = NEW_YORK
    assert resolver.resolve_coordinates(ip="999.1.1.1") is None
    assert geo_lookup.calls == []


@pytest.mark.parametrize("ip", ["127.0.0.1", "10.2.3.4", "192.168.1.20", "172.20.0.5", "::1"])
def test_local_ip_is_never_looked_up(geo_lookup, resolver, ip):
    geo_lookup.record = NEW_YORK
    assert resolver.resolve_from_ip(ip) is None
    assert geo_lookup.calls == []


def test_lookup_errors_resolve_to_none(resolver, geo_lookup, caplog):
    geo_lookup.error = RuntimeError("database corrupted")
    caplog.set_level(logging.ERROR)

    assert resolver.resolve_coordinates(ip="8.8.8.8") is None
    record = next(r for r in caplog.records if r.message == "GeoIP lookup failed")
    assert record.error_type == "RuntimeError"


def test_lookup_without_coordinates_resolves_to_none(resolver, geo_lookup):
    geo_lookup.record = GeoRecord(country="US")
    assert resolver.resolve_from_ip("8.8.8.8") is None


def test_out_of_range_database_coordinates_resolve_to_none(resolver, geo_lookup):
    geo_lookup.record = GeoRecord(lat=123.0, lon=10.0, country="XX")
    assert resolver.resolve_from_ip("8.8.8.8") is None


def test_compressed_ipv6_is_looked_up(resolver, geo_lookup):
    geo_lookup.record = NEW_YORK
    resolved = resolver.resolve_coordinates(ip="2001:4860:4860::8888")
    assert resolved is not None
    assert geo_lookup.calls == ["2001:4860:4860::8888"]


def test_empty_enrichment_fields_are_dropped(resolver, geo_lookup):
    geo_lookup.record = GeoRecord(lat=51.5, lon=-0.12, city="", country="GB")
    resolved = resolver.resolve_from_ip("81.2.69.160")
    assert resolved.as_dict() == {
        "lat": 51.5,
        "lon": -0.12,
        "source": "geoip",
        "accuracy": "medium",
        "country": "GB",
    }


@pytest.mark.parametrize(
    ("ip", "expected"),
    [
        ("127.0.0.1", True),
        ("127.255.0.9", True),
        ("10.0.0.1", True),
        ("172.16.0.1", True),
        ("172.31.255.255", True),
        ("172.32.0.1", False),
        ("192.168.0.1", True),
        ("::1", True),
        ("fd12::1", True),
        ("localhost", True),
        ("", True),
        (None, True),
        ("8.8.8.8", False),
        ("2001:4860:4860::8888", False),
    ],
)
def test_is_local_ip(ip, expected):
    assert is_local_ip(ip) is expected


@pytest.mark.parametrize(
    ("ip", "expected"),
    [
        ("8.8.8.8", True),
        ("2001:db8::1", True),
        ("2001:0db8:0000:0000:0000:0000:0000:0001", True),
        ("256.1.1.1", False),
        ("1.2.3", False),
        ("not-an-ip", False),
        ("", False),
        (None, False),
    ],
)
def test_is_valid_ip(ip, expected):
    assert is_valid_ip(ip) is expected


def test_validate_coordinates_accepts_numbers_and_strings():
    assert validate_coordinates(40.7, "-74") == (40.7, -74.0)
    assert validate_coordinates(None, 1) is None
    assert validate_coordinates("", "") is None


def test_build_tevo_params_with_coordinate_includes_all_location_keys():
    coordinate = ResolvedCoordinate(lat=40.7, lon=-74.0, source="browser", accuracy="high")

    params = build_tevo_params(coordinate, 25, {"category_id": 7})

    assert params == {
        "only_with_available_tickets": True,
        "category_id": 7,
        "lat": 40.7,
        "lon": -74.0,
        "within": 25,
    }


def test_build_tevo_params_without_coordinate_never_sends_within():
    params = build_tevo_params(None, 25, {"within": 100, "lat": 1, "lon": 2, "q": "jazz"})

    assert params == {"only_with_available_tickets": True, "q": "jazz"}


def test_build_tevo_params_replaces_passthrough_location():
    coordinate = ResolvedCoordinate(lat=1.5, lon=2.5, source="geoip", accuracy="medium")
    params = build_tevo_params(coordinate, extra_params={"within": 999, "lat": 0})
    assert (params["lat"], params["lon"], params["within"]) == (1.5, 2.5, 50)


def test_get_country_from_ip(resolver, geo_lookup):
    geo_lookup.record = GeoRecord(country="DE")
    assert resolver.get_country_from_ip("5.9.0.1") == "DE"
    assert resolver.get_country_from_ip("192.168.0.2") is None
    assert resolver.get_country_from_ip(None) is None

    geo_lookup.error = ValueError("boom")
    assert resolver.get_country_from_ip("5.9.0.1") is None


def test_health_check_reports_lookup_result(resolver, geo_lookup):
    geo_lookup.record = NEW_YORK
    health = resolver.health_check()
    assert health["status"] == "healthy"
    assert health["test_lookup"] == "success"
    assert health["geoip_database"] == "FakeGeoLookup"


def test_health_check_reports_failures():
    failing = CoordinateResolver(FakeGeoLookup(error=OSError("unreadable")))
    health = failing.health_check()
    assert health["status"] == "unhealthy"
    assert health["error"] == "unreadable"


def test_health_check_without_database():
    health = CoordinateResolver(NullGeoLookup()).health_check()
    assert health["status"] == "healthy"
    assert health["test_lookup"] == "failed"


def test_create_geo_lookup_without_path_disables_lookups():
    lookup = create_geo_lookup(None)
    assert isinstance(lookup, NullGeoLookup)
    assert lookup.lookup("8.8.8.8") is None


def test_surrounding_whitespace_is_stripped_before_lookup(resolver, geo_lookup):
    geo_lookup.record = NEW_YORK

    resolved = resolver.resolve_coordinates(ip=" 8.8.8.8 ")

    assert resolved is not None
    assert resolved.source == "geoip"
    assert resolver.get_country_from_ip("\t8.8.4.4\n") == "US"
    assert geo_lookup.calls == ["8.8.8.8", "8.8.4.4"]


class StubCityReader:
    """Replacement for ``geoip2.database.Reader`` serving one known address."""

    instances: list["StubCityReader"] = []

    def __init__(self, database_path: str) -> None:
        self.database_path = database_path
        self.closed = False
        StubCityReader.instances.append(self)

    def city(self, ip: str):
        if ip != "8.8.8.8":
            raise geoip2.errors.AddressNotFoundError(f"The address {ip} is not in the database.")
        return SimpleNamespace(
            location=SimpleNamespace(
                latitude=37.751, longitude=-97.822, time_zone="America/Chicago"
            ),
            city=SimpleNamespace(name="Wichita"),
            subdivisions=SimpleNamespace(most_specific=SimpleNamespace(iso_code="KS")),
            country=SimpleNamespace(iso_code="US"),
        )

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def stub_reader(monkeypatch):
    StubCityReader.instances = []
    monkeypatch.setattr(geoip2.database, "Reader", StubCityReader)
    return StubCityReader


def test_geoip2_lookup_maps_city_response(stub_reader):
    lookup = create_geo_lookup("/data/GeoLite2-City.mmdb")

    assert isinstance(lookup, GeoIP2Lookup)
    assert stub_reader.instances[0].database_path == "/data/GeoLite2-City.mmdb"
    assert lookup.lookup("8.8.8.8") == GeoRecord(
        lat=37.751,
        lon=-97.822,
        city="Wichita",
        region="KS",
        country="US",
        timezone="America/Chicago",
    )


def test_geoip2_lookup_returns_none_for_unknown_address(stub_reader):
    lookup = GeoIP2Lookup("/data/GeoLite2-City.mmdb")

    assert lookup.lookup("203.0.113.9") is None
    assert CoordinateResolver(lookup).resolve_coordinates(ip="203.0.113.9") is None


def test_resolver_close_releases_the_database(stub_reader):
    resolver = CoordinateResolver(GeoIP2Lookup("/data/GeoLite2-City.mmdb"))

    resolver.close()

    assert stub_reader.instances[0].closed is True


def test_resolver_close_without_closable_lookup():
    CoordinateResolver(NullGeoLookup()).close()
