"""Tests for payload validation and enrichment."""
from __future__ import annotations

import json

import pytest

from ..core.admission import admit, client_address
from ..errors import InvalidFields, MalformedPayload


def _clock() -> int:
    return 1234


def test_valid_payload_is_enriched() -> None:
    body = json.dumps({"lat": 48.85, "lng": 2.35, "speed": 3, "meta": {"src": "gps"}})
    update = admit(body.encode(), forwarded_for="203.0.113.7", peer="10.0.0.1", clock=_clock)
    assert update.lat == 48.85
    assert update.lng == 2.35
    assert update.received_at_ms == 1234
    assert update.ip == "203.0.113.7"
    assert update.extra == {"speed": 3, "meta": {"src": "gps"}}


def test_payload_keeps_extra_fields_and_stamps_win() -> None:
    update = admit({"lat": 1, "lng": 2, "ip": "spoofed", "note": "x"}, peer="10.0.0.1", clock=_clock)
    assert update.payload() == {
        "lat": 1.0,
        "lng": 2.0,
        "note": "x",
        "received_at_ms": 1234,
        "ip": "10.0.0.1",
    }


def test_string_lat_names_lat() -> None:
    with pytest.raises(InvalidFields) as excinfo:
        admit(b'{"lat": "x", "lng": 2}')
    assert excinfo.value.fields == ["lat"]
    assert excinfo.value.reason == "InvalidFields"


def test_missing_fields_are_all_named() -> None:
    with pytest.raises(InvalidFields) as excinfo:
        admit(b'{"speed": 1}')
    assert excinfo.value.fields == ["lat", "lng"]


@pytest.mark.parametrize(
    "body",
    [
        b'{"lat": true, "lng": 2}',
        b'{"lat": null, "lng": 2}',
        b'{"lat": [1], "lng": 2}',
    ],
)
def test_non_numeric_lat_rejected(body: bytes) -> None:
    with pytest.raises(InvalidFields) as excinfo:
        admit(body)
    assert excinfo.value.fields == ["lat"]


def test_empty_body_is_an_empty_object() -> None:
    with pytest.raises(InvalidFields) as excinfo:
        admit(b"")
    assert excinfo.value.fields == ["lat", "lng"]


@pytest.mark.parametrize("body", [b"{not json", b"\xff\xfe", b"[1, 2]", b"null", b'"text"'])
def test_malformed_payload(body: bytes) -> None:
    with pytest.raises(MalformedPayload) as excinfo:
        admit(body)
    assert excinfo.value.reason == "MalformedPayload"


@pytest.mark.parametrize(
    ("forwarded", "peer", "expected"),
    [
        ("198.51.100.1, 10.0.0.2", "10.0.0.9", "198.51.100.1"),
        ("", "10.0.0.9", "10.0.0.9"),
        (" , 10.0.0.2", "10.0.0.9", "10.0.0.9"),
        (None, None, None),
    ],
)
def test_client_address(forwarded, peer, expected) -> None:
    assert client_address(forwarded, peer) == expected


@pytest.mark.parametrize(
    "body",
    [
        b'{"lat": NaN, "lng": 2}',
        b'{"lat": 1, "lng": -Infinity}',
        b'{"lat": 1e400, "lng": 2}',
        b'{"lat": 1, "lng": 2, "speed": NaN}',
        b'{"lat": 1, "lng": 2, "alt": 1e400}',
        b'{"lat": 1, "lng": 2, "meta": {"acc": Infinity}}',
    ],
)
def test_non_standard_numbers_are_malformed(body: bytes) -> None:
    with pytest.raises(MalformedPayload):
        admit(body)


def test_non_finite_extra_in_parsed_document_is_malformed() -> None:
    with pytest.raises(MalformedPayload):
        admit({"lat": 1, "lng": 2, "speed": float("nan")})


def test_non_finite_lat_in_parsed_document_names_lat() -> None:
    with pytest.raises(InvalidFields) as excinfo:
        admit({"lat": float("inf"), "lng": 2})
    assert excinfo.value.fields == ["lat"]


def test_deeply_nested_body_is_malformed() -> None:
    depth = 100_000
    body = b'{"lat": 1, "lng": 2, "x": ' + b"[" * depth + b"]" * depth + b"}"
    with pytest.raises(MalformedPayload):
        admit(body)


def test_accepted_update_cannot_be_changed_through_extra() -> None:
    document = {"lat": 1, "lng": 2, "meta": {"src": "gps"}}
    update = admit(document, clock=_clock)
    document["meta"]["src"] = "edited"

    with pytest.raises(TypeError):
        update.extra["meta"] = {}
    update.payload()["meta"]["src"] = "edited"

    assert update.payload()["meta"] == {"src": "gps"}
