"""Admission gate: validate and stamp incoming positions."""
from __future__ import annotations

import json
import math
import time
from typing import Any, Callable

from ..errors import InvalidFields, MalformedPayload
from ..models.positions import Update
from ..util.schema import invalid_fields

REQUIRED_FIELDS = ("lat", "lng")

Clock = Callable[[], int]


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {text}")
    return value


def parse_body(raw: bytes | str | None) -> Any:
    """Decode a request body as strict JSON. An empty body counts as an empty object.

    ``NaN``, ``Infinity`` and literals that overflow a float are refused, as
    are documents nested too deeply to decode.
    """
    if raw is None or len(raw) == 0:
        return {}
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)
    except (ValueError, RecursionError) as exc:
        raise MalformedPayload() from exc


def _ensure_strict_json(document: dict[str, Any]) -> None:
    try:
        json.dumps(document, allow_nan=False)
    except (ValueError, TypeError, RecursionError) as exc:
        raise MalformedPayload() from exc


def client_address(forwarded_for: str | None, peer: str | None) -> str | None:
    """Best-effort originating address: first forwarded hop, else the peer."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return peer or None


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(value)
    except (OverflowError, TypeError):
        return False


def admit(
    raw: Any,
    *,
    forwarded_for: str | None = None,
    peer: str | None = None,
    clock: Clock = now_ms,
) -> Update:
    """Turn a raw submission into an accepted :class:`Update`.

    ``raw`` is either the undecoded request body or an already parsed object.
    Raises :class:`MalformedPayload` when the body is not a strict JSON object
    (no NaN or Infinity anywhere) and :class:`InvalidFields` when
    ``lat``/``lng`` are missing, not numbers, or not finite. Nothing outside the returned value is touched.
    """

    document = parse_body(raw) if isinstance(raw, (bytes, str)) or raw is None else raw
    if not isinstance(document, dict):
        raise MalformedPayload("Expected a JSON object")

    bad = invalid_fields(document, schema_name="position")
    bad.update(name for name in REQUIRED_FIELDS if name not in bad and not _is_finite(document[name]))
    if bad:
        raise InvalidFields(bad)
    _ensure_strict_json(document)

    extra = {key: value for key, value in document.items() if key not in REQUIRED_FIELDS}
    return Update(
        lat=float(document["lat"]),
        lng=float(document["lng"]),
        received_at_ms=clock(),
        ip=client_address(forwarded_for, peer),
        extra=extra,
    )
