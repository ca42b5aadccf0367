from __future__ import annotations

from fastapi import status


class ServiceError(Exception):
    """Base for every failure surfaced to API callers as ``{"error": message}``."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(ServiceError):
    """Required deployment configuration is missing."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ValidationError(ServiceError):
    """Caller-supplied input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class RemoteAPIError(ServiceError):
    """The remote job API answered with a non-success status."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message, status_code=status_code)
        self.body = body


class JobFailedError(RemoteAPIError):
    """The remote job finished in ``failed`` or ``canceled`` state."""


class ProtocolError(ServiceError):
    """The remote job API returned a payload that breaks its contract."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class JobTimeoutError(ServiceError):
    """Polling exceeded its deadline before the job reached a terminal state."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class ArtifactFetchError(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, url: str, message: str, *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.upstream_status = upstream_status


class ConversionError(ServiceError):
    """ffmpeg is unavailable or the encode failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
