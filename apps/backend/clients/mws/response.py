import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar
from xml.parsers.expat import ExpatError

import xmltodict

from apps.backend.clients.mws.errors import ServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    """A successful response: the parsed XML document, or the raw bytes when the body is not XML."""
    payload: dict[str, Any] | bytes
    ok: ClassVar[bool] = True

    def unwrap(self) -> dict[str, Any] | bytes:
        return self.payload


@dataclass(frozen=True)
class Failure:
    """A response carrying an MWS ``Error`` node."""
    error: ServiceError
    ok: ClassVar[bool] = False

    def unwrap(self):
        raise self.error


MWSResult = Success | Failure


def parse_xml(body: str | bytes) -> dict[str, Any] | None:
    """Parses an XML body into a dict keyed by the root element name. Returns None if it is not XML."""
    # xmltodict raises ValueError for documents declaring entities
    try:
        return xmltodict.parse(body)
    except (ExpatError, ValueError):
        return None


def _text(node: Any) -> str | None:
    # Elements with attributes come back as {"@attr": ..., "#text": ...}
    if isinstance(node, dict):
        return node.get("#text")
    return node


def build_service_error(
    root: Mapping[str, Any],
    headers: Mapping[str, str] | None = None,
    status_code: int | None = None,
) -> ServiceError:
    """Builds a ServiceError from the root element of an ErrorResponse document."""
    error = root["Error"]
    if isinstance(error, list):
        error = error[0]
    if not isinstance(error, dict):
        error = {}

    request_id = root.get("RequestID", root.get("RequestId"))
    return ServiceError(
        message=_text(error.get("Message")) or "",
        error_type=_text(error.get("Type")),
        code=_text(error.get("Code")),
        request_id=_text(request_id),
        headers=headers,
        status_code=status_code,
    )


def classify_response(
    body: str | bytes,
    headers: Mapping[str, str] | None = None,
    status_code: int | None = None,
) -> MWSResult:
    """
    Decides whether an MWS response is a success or a service error.

    MWS sometimes answers with bodies that are not XML (flat-file reports, empty
    bodies), so a body that fails to parse is returned as-is instead of being
    treated as an error.
    """
    document = parse_xml(body)
    if document is None:
        logger.debug("Response body is not XML, returning raw content (%d bytes)", len(body))
        return Success(body)

    root = next(iter(document.values()), None)
    if isinstance(root, dict) and "Error" in root:
        return Failure(build_service_error(root, headers, status_code))
    return Success(document)
