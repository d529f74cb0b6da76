import base64
import hashlib
import hmac
import logging

import pytest

from .conftest import API_SECRET
from tixport.errors import ConfigurationError, InvalidUrlError
from tixport.signing import (
    RequestSigner,
    SignatureRequest,
    canonical_query,
    canonical_string,
    extract_host,
    extract_path,
    serialize_body,
)

HOST = "api.ticketevolution.com"


def expected_signature(secret: str, message: str) -> str:
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def test_canonical_string_sorts_query_parameters():
    request = SignatureRequest(
        method="get",
        host=HOST,
        path="/v9/events",
        query={"per_page": 20, "page": 1, "lat": 40.7, "only_with_available_tickets": True},
    )

    assert canonical_string(request) == (
        "GET api.ticketevolution.com/v9/events"
        "?lat=40.7&only_with_available_tickets=true&page=1&per_page=20"
    )


def test_canonical_string_without_parameters_keeps_question_mark():
    request = SignatureRequest(method="GET", host=HOST, path="/v9/events/42")
    assert canonical_string(request) == "GET api.ticketevolution.com/v9/events/42?"


def test_canonical_string_uses_compact_body_and_ignores_query():
    request = SignatureRequest(
        method="POST",
        host=HOST,
        path="/v9/orders",
        query={"ignored": "yes"},
        body={"b": 1, "a": "x y"},
    )
    assert canonical_string(request) == 'POST api.ticketevolution.com/v9/orders?{"b":1,"a":"x y"}'


def test_canonical_query_omits_none_values_and_renders_scalars():
    assert (
        canonical_query({"within": 50.0, "category_id": None, "flag": False, "lat": 40.75})
        == "flag=false&lat=40.75&within=50"
    )


def test_canonical_query_percent_encodes_like_encode_uri_component():
    assert canonical_query({"q": "Beyoncé"}) == "q=Beyonc%C3%A9"
    assert canonical_query({"q": "rock & roll"}) == "q=rock%20%26%20roll"
    assert canonical_query({"q": "it's (live)!"}) == "q=it's%20(live)!"


def test_canonical_query_empty():
    assert canonical_query({}) == ""
    assert canonical_query(None) == ""


def test_serialize_body_keeps_unicode_and_order():
    assert serialize_body({"name": "Café", "id": 3}) == '{"name":"Café","id":3}'


def test_serialize_body_renders_integral_floats_as_integers():
    body = {"retail": {"price": 100.0, "shipping": 15.5, "service_fee": 0}, "items": [2.0]}
    assert serialize_body(body) == '{"retail":{"price":100,"shipping":15.5,"service_fee":0},"items":[2]}'


@pytest.mark.parametrize("value", [float("nan"), float("inf")])
def test_serialize_body_rejects_non_finite_numbers(value):
    with pytest.raises(ValueError):
        serialize_body({"price": value})


def test_signing_a_body_does_not_log_it(signer, caplog):
    caplog.set_level(logging.DEBUG, logger="tixport.signing")
    request = SignatureRequest(
        method="post",
        host=HOST,
        path="/v9/tax_quotes",
        body={"client": {"email": "buyer@example.com"}},
    )

    signer.sign(request)

    record = next(r for r in caplog.records if r.name == "tixport.signing")
    assert record.canonical_request == "POST api.ticketevolution.com/v9/tax_quotes"
    assert "buyer@example.com" not in caplog.text


def test_sign_matches_manual_hmac(signer):
    request = SignatureRequest(
        method="GET", host=HOST, path="/v9/events", query={"page": 1, "per_page": 20}
    )
    message = "GET api.ticketevolution.com/v9/events?page=1&per_page=20"

    assert signer.sign(request) == expected_signature(API_SECRET, message)


def test_sign_is_deterministic_and_order_independent(signer):
    first = SignatureRequest(
        method="GET", host=HOST, path="/v9/events", query={"a": "1", "b": "2"}
    )
    second = SignatureRequest(
        method="GET", host=HOST, path="/v9/events", query={"b": "2", "a": "1"}
    )

    assert signer.sign(first) == signer.sign(first)
    assert signer.sign(first) == signer.sign(second)


def test_signature_changes_with_method_and_values(signer):
    base = SignatureRequest(method="GET", host=HOST, path="/v9/events", query={"page": 1})
    other_method = SignatureRequest(method="DELETE", host=HOST, path="/v9/events", query={"page": 1})
    other_value = SignatureRequest(method="GET", host=HOST, path="/v9/events", query={"page": 2})

    assert signer.sign(base) != signer.sign(other_method)
    assert signer.sign(base) != signer.sign(other_value)


def test_signature_differs_between_secrets():
    request = SignatureRequest(method="GET", host=HOST, path="/v9/events")
    assert RequestSigner("t", "secret-one").sign(request) != RequestSigner("t", "secret-two").sign(
        request
    )


def test_build_headers_defaults_to_version_9(signer):
    request = SignatureRequest(method="GET", host=HOST, path="/v9/events")
    headers = signer.build_headers(request)

    assert headers["X-Token"] == "test-token-0123456789"
    assert headers["X-Signature"] == signer.sign(request)
    assert headers["Content-Type"] == "application/json"
    assert headers["Accept"] == "application/vnd.ticketevolution.api+json; version=9"


def test_build_headers_version_10(signer):
    request = SignatureRequest(method="GET", host=HOST, path="/v10/events")
    headers = signer.build_headers(request, "v10")
    assert headers["Accept"] == "application/vnd.ticketevolution.api+json; version=10"


@pytest.mark.parametrize("secret", [None, "", "   "])
def test_signer_requires_secret(secret):
    with pytest.raises(ConfigurationError, match="TICKET_EVOLUTION_API_SECRET"):
        RequestSigner("token", secret)


def test_validate_configuration_reports_missing_token():
    status = RequestSigner(None, "secret").validate_configuration()
    assert not status.is_valid
    assert status.errors == ["TICKET_EVOLUTION_API_TOKEN is required"]


def test_validate_configuration_accepts_complete_credentials(signer):
    status = signer.validate_configuration()
    assert status.is_valid
    assert status.errors == []


def test_signer_without_token_sends_empty_token_header():
    signer = RequestSigner(None, "secret")
    headers = signer.build_headers(SignatureRequest(method="GET", host=HOST, path="/"))
    assert headers["X-Token"] == ""


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://api.ticketevolution.com/v9", "api.ticketevolution.com"),
        ("https://api.example.com:8443/v9", "api.example.com:8443"),
        ("https://api.example.com:443/v9", "api.example.com"),
        ("http://api.example.com:80/", "api.example.com"),
        ("http://[::1]:8080/v9", "[::1]:8080"),
    ],
)



def test_extract_host(url, expected):
    assert extract_host(url) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://api.ticketevolution.com/v9/events?page=1", "/v9/events"),
        ("https://api.ticketevolution.com", "/"),
        ("https://api.ticketevolution.com/", "/"),
    ],
)



def test_extract_path(url, expected):
    assert extract_path(url) == expected


@pytest.mark.parametrize("url", ["", "   ", "not a url", "https://host:notaport/", None])
def test_invalid_urls_raise(url):
    with pytest.raises(InvalidUrlError):
        extract_host(url)
    with pytest.raises(InvalidUrlError):
        extract_path(url)
