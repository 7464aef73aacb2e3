"""Pydantic models for position APIs."""
from __future__ import annotations

import copy
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Update(BaseModel):
    """An accepted position. Frozen once constructed.

    ``extra`` is a read-only copy of the caller's fields; ``payload()`` hands
    out a deep copy so consumers cannot reach the stored values.
    """

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    received_at_ms: int
    ip: Optional[str] = None
    extra: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("extra", mode="after")
    @classmethod
    def _freeze_extra(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(copy.deepcopy(dict(value)))

    def payload(self) -> dict[str, Any]:
        """Flat wire form: caller fields with the stamped fields on top."""
        return {
            "lat": self.lat,
            "lng": self.lng,
            **copy.deepcopy(dict(self.extra)),
            "received_at_ms": self.received_at_ms,
            "ip": self.ip,
        }


class CollectResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str
    reason: Optional[str] = None
    fields: Optional[list[str]] = None
