"""Error taxonomy shared by the engine and the HTTP layer."""
from __future__ import annotations

from typing import Iterable


class RelayError(Exception):
    """Base class for errors reported by the relay."""

    reason: str = "RelayError"
    status_code: int = 500

    def to_body(self) -> dict[str, object]:
        return {"error": str(self), "reason": self.reason}


class AdmissionError(RelayError):
    """Raised when a submitted position is refused by the admission gate."""

    reason = "AdmissionError"
    status_code = 400


class MalformedPayload(AdmissionError):
    """The request body could not be parsed as a JSON object."""

    reason = "MalformedPayload"

    def __init__(self, message: str = "Invalid JSON") -> None:
        super().__init__(message)


class InvalidFields(AdmissionError):
    """The body parsed, but required fields are missing or not finite numbers."""

    reason = "InvalidFields"

    def __init__(self, fields: Iterable[str]) -> None:
        self.fields = sorted(set(fields))
        super().__init__(f"Missing/invalid {'/'.join(self.fields)}")

    def to_body(self) -> dict[str, object]:
        return super().to_body() | {"fields": self.fields}


class NotYetAvailable(RelayError):
    """Queried before any position has been accepted."""

    reason = "NotYetAvailable"
    status_code = 404

    def __init__(self, message: str = "No data yet") -> None:
        super().__init__(message)


class SubscriberDeliveryFailure(RelayError):
    """A subscriber channel refused a message. Never reported to producers."""

    reason = "SubscriberDeliveryFailure"
