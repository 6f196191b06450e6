"""
Error taxonomy shared by the catalog core and the HTTP layer.

Each error carries the HTTP status the API answers with; the app registers a
single handler that turns any ShelfscanError into ``{"detail": ...}``.
"""

from __future__ import annotations

from typing import Any


class ShelfscanError(Exception):
    status_code: int = 500

    def __init__(self, message: str = "", *, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail if detail is not None else message


class InvalidInput(ShelfscanError):
    status_code = 400


class Unauthenticated(ShelfscanError):
    status_code = 401


class EntitlementRequired(ShelfscanError):
    status_code = 403

    def __init__(self, message: str = "Active subscription required"):
        super().__init__(message, detail={"message": message, "code": "SUBSCRIPTION_REQUIRED"})


class QuotaExceeded(ShelfscanError):
    status_code = 403

    def __init__(self, limit: int, used: int, incoming: int):
        self.limit = limit
        self.used = used
        self.incoming = incoming
        super().__init__(
            f"Adding {incoming} books would exceed your monthly limit of {limit} books. "
            f"You have added {used} books this month."
        )


class NotFound(ShelfscanError):
    status_code = 404


class PayloadTooLarge(ShelfscanError):
    status_code = 413


class RateLimited(ShelfscanError):
    status_code = 429


class ExtractionFailed(ShelfscanError):
    status_code = 500


class ResolutionFailed(ShelfscanError):
    status_code = 500


class StorageError(ShelfscanError):
    status_code = 500


__all__ = [
    "ShelfscanError",
    "InvalidInput",
    "Unauthenticated",
    "EntitlementRequired",
    "QuotaExceeded",
    "NotFound",
    "PayloadTooLarge",
    "RateLimited",
    "ExtractionFailed",
    "ResolutionFailed",
    "StorageError",
]
