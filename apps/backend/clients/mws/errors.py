from collections.abc import Mapping

import httpx

# Transport failures are raised by httpx and are never wrapped by this package.
TransportError = httpx.HTTPError


class MWSError(Exception):
    """Base class for all MWS errors."""


class ConfigurationError(MWSError, ValueError):
    """Raised when a client is built with an invalid base URL, application name or version."""


class ServiceError(MWSError):
    """
    Error reported by MWS inside an ``ErrorResponse`` payload.

    Args:
        message: The ``Message`` of the error node, empty when the service omitted it.
        error_type: ``Sender``, ``Receiver`` or ``Unknown`` when present.
        code: The service error code, e.g. ``InvalidParameterValue``.
        request_id: The ``RequestID`` returned alongside the error.
        headers: Response headers, kept for diagnostics (x-mws-request-id, quota headers, ...).
        status_code: HTTP status of the response when the transport supplied one.
    """

    def __init__(
        self,
        message: str,
        error_type: str | None = None,
        code: str | None = None,
        request_id: str | None = None,
        headers: Mapping[str, str] | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code
        self.request_id = request_id
        self.headers = dict(headers or {})
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"ServiceError(message={self.message!r}, error_type={self.error_type!r}, "
            f"code={self.code!r}, request_id={self.request_id!r})"
        )
