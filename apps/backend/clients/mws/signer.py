import base64
import hashlib
import hmac
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote, urlsplit

from apps.backend.clients.mws.config import Credentials

METHOD_POST = "POST"
SIGNATURE_METHOD = "HmacSHA256"
SIGNATURE_VERSION = "2"

# Optional params may carry a raw XML document under this key (feeds, carts, ...).
XML_PAYLOAD_KEY = "xml"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"
XML_CONTENT_TYPE = "text/xml"

# MWS rejects requests that look like they come from the future.
TIMESTAMP_SKEW = timedelta(seconds=120)


@dataclass(frozen=True)
class SignedRequest:
    """
    A fully signed MWS request, ready to hand to the transport.

    In form mode ``body`` holds the encoded parameters and ``query_string`` is None.
    In XML mode the parameters travel in ``query_string`` and ``body`` is the XML document.
    """
    params: dict[str, str]
    content_type: str
    body: str | bytes
    query_string: str | None = None

    @property
    def is_xml(self) -> bool:
        return self.query_string is not None


def percent_encode(value: Any) -> str:
    """RFC 3986 encoding: everything but unreserved characters is escaped, space becomes %20."""
    return quote(str(value), safe="-_.~")


def encode_path(path: str) -> str:
    """Encodes each path segment on its own and rejoins them with a literal '/'."""
    return "/".join(percent_encode(segment) for segment in path.split("/"))


def serialize_params(params: Mapping[str, str]) -> str:
    """Joins params as key=value pairs in their current order. Only values are encoded."""
    return "&".join(f"{key}={percent_encode(value)}" for key, value in params.items())


def expand_marketplace_ids(marketplace_ids: Iterable[str]) -> dict[str, str]:
    """
    Builds the enumerated MarketplaceIdList parameters, keeping the given order.

    ie. ("A", "B") -> {"MarketplaceIdList.Id.1": "A", "MarketplaceIdList.Id.2": "B"}
    """
    return {
        f"MarketplaceIdList.Id.{num}": marketplace_id
        for num, marketplace_id in enumerate(marketplace_ids, start=1)
    }


def build_required_params(
    credentials: Credentials,
    marketplace_ids: Iterable[str],
    action: str,
    version_uri: str,
    ignore_marketplace_ids: bool = False,
) -> dict[str, str]:
    params = {
        "AWSAccessKeyId": credentials.access_key,
        "Action": action,
        "SellerId": credentials.seller_id,
        "MWSAuthToken": credentials.auth_token,
        "SignatureVersion": SIGNATURE_VERSION,
        "Version": version_uri.split("/")[-1],
        "SignatureMethod": SIGNATURE_METHOD,
    }
    if not ignore_marketplace_ids:
        params.update(expand_marketplace_ids(marketplace_ids))
    return params


def generate_timestamp(now: datetime | None = None) -> str:
    """
    Returns an ISO-8601 timestamp two minutes before ``now`` (default: the current time).

    Naive datetimes are taken to be UTC.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - TIMESTAMP_SKEW).isoformat(timespec="seconds")


def calculate_string_to_sign(params: Mapping[str, str], host: str, path: str, method: str = METHOD_POST) -> str:
    """Builds the canonical string: method, host, encoded path and the params sorted by key."""
    sorted_params = {key: params[key] for key in sorted(params)}
    return "\n".join([method, host, encode_path(path or "/"), serialize_params(sorted_params)])


def sign_string(data: str, secret_key: str) -> str:
    digest = hmac.new(secret_key.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def content_md5(payload: str | bytes) -> str:
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return base64.b64encode(hashlib.md5(payload).digest()).decode("ascii")


class RequestSigner:
    """
    Builds and signs MWS requests (Signature Version 2, HmacSHA256).

    Holds only immutable configuration, so a single instance can be shared
    between concurrent tasks. No I/O happens here.
    """

    def __init__(self, credentials: Credentials, marketplace_ids: Iterable[str], base_url: str):
        self._credentials = credentials
        self._marketplace_ids = tuple(marketplace_ids)
        self._base_url = base_url.rstrip("/")

    def endpoint(self, version_uri: str) -> tuple[str, str]:
        """Returns the (host, path) pair the signature is computed over."""
        parts = urlsplit(f"{self._base_url}{version_uri}")
        return parts.hostname or "", parts.path or "/"

    def build_params(self, action: str, version_uri: str, optional_params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Merges the caller's params with the required ones. Required values win on collision."""
        optional_params = dict(optional_params or {})
        required = build_required_params(
            self._credentials,
            self._marketplace_ids,
            action,
            version_uri,
            ignore_marketplace_ids="MarketplaceId" in optional_params,
        )
        return {**optional_params, **required}

    def sign(
        self,
        action: str,
        version_uri: str,
        optional_params: Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> SignedRequest:
        params = self.build_params(action, version_uri, optional_params)
        xml_payload = params.pop(XML_PAYLOAD_KEY, None)
        params.pop("Signature", None)

        signable = {key: str(value) for key, value in params.items()}
        signable["Timestamp"] = generate_timestamp(now)
        if xml_payload is not None:
            signable["ContentMD5Value"] = content_md5(xml_payload)

        host, path = self.endpoint(version_uri)
        string_to_sign = calculate_string_to_sign(signable, host, path)
        signable["Signature"] = sign_string(string_to_sign, self._credentials.secret_key)

        encoded = serialize_params(signable)
        if xml_payload is not None:
            return SignedRequest(
                params=signable,
                content_type=XML_CONTENT_TYPE,
                body=xml_payload,
                query_string=encoded,
            )
        return SignedRequest(params=signable, content_type=FORM_CONTENT_TYPE, body=encoded)
