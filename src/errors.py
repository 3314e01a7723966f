"""Error taxonomy shared by every pipeline stage.

Each error carries a user-visible ``message`` and the HTTP status the API layer
should answer with.  Nothing in the pipeline retries on these; the caller
re-invokes the stage.
"""
from __future__ import annotations

from typing import Optional


class HistoryMakerError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(HistoryMakerError):
    """A required credential or setting is missing. The user must fix settings."""

    status_code = 400


class ValidationError(HistoryMakerError):
    status_code = 400


class NotFoundError(HistoryMakerError):
    status_code = 404


class AuthorizationError(HistoryMakerError):
    status_code = 403


class UpstreamError(HistoryMakerError):
    """A third-party service answered with a non-success status or unusable body."""

    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        service: str = "",
        upstream_status: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.service = service
        self.upstream_status = upstream_status
        self.body = body

    @classmethod
    def from_response(cls, service: str, resp) -> "UpstreamError":
        text = str(getattr(resp, "text", "") or "")
        status = getattr(resp, "status_code", None)
        return cls(
            f"{service} error {status}: {text[:500]}",
            service=service,
            upstream_status=status,
            body=text,
        )

    @classmethod
    def from_transport(cls, service: str, exc: Exception) -> "UpstreamError":
        """The request never got an answer (connection refused, reset, timeout)."""
        return cls(f"{service} unreachable: {exc}", service=service, upstream_status=0)


class MalformedOutputError(UpstreamError):
    """The model answered, but never in the requested structured shape."""


def require(value, message: str):
    """Return *value* or raise ``ValidationError`` when it is blank.

    Missing credentials go through ``UserSettings.require`` instead, which
    raises ``ConfigurationError``.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(message)
    return value
