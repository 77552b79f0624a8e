import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from apps.backend.clients.http import HttpClient
from apps.backend.clients.mws.config import MWSConfig, validate_mws_config
from apps.backend.clients.mws.environment import EnvironmentInfo, format_user_agent
from apps.backend.clients.mws.response import Failure, MWSResult, classify_response
from apps.backend.clients.mws.signer import METHOD_POST, RequestSigner

logger = logging.getLogger(__name__)


class MWSClient:
    """
    Sends signed requests to Amazon MWS and classifies the responses.

    Check the MWS developer guide and scratchpad for the available actions
    and their parameters, e.g. ``send("ListOrders", "/Orders/2013-09-01",
    {"CreatedAfter": "2024-01-01T00:00:00Z"})``.

    Transport errors (httpx.HTTPError) propagate unchanged. Service errors are
    returned as ``Failure``; call ``unwrap()`` on the result to raise them instead.

    Raises ConfigurationError if the config has an invalid base URL, application name or version.
    """

    def __init__(self, config: MWSConfig, http: HttpClient, environment: EnvironmentInfo | None = None):
        error = validate_mws_config(config)
        if error is not None:
            raise error
        self.config = config
        self._http = http
        self._signer = RequestSigner(config.credentials, config.marketplace_ids, config.base_url)
        self.user_agent = format_user_agent(
            config.application_name,
            config.application_version,
            environment or EnvironmentInfo.detect(),
        )

    async def send(
        self,
        action: str,
        version_uri: str,
        optional_params: Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> MWSResult:
        signed = self._signer.sign(action, version_uri, optional_params, now=now)
        headers = {"User-Agent": self.user_agent, "Content-Type": signed.content_type}
        path = f"{version_uri}?{signed.query_string}" if signed.is_xml else version_uri

        logger.debug("Sending MWS %s to %s (xml=%s)", action, version_uri, signed.is_xml)
        response = await self._http.request(METHOD_POST, path, headers=headers, content=signed.body)

        result = classify_response(response.content, response.headers, status_code=response.status_code)
        if isinstance(result, Failure):
            logger.warning(
                "MWS %s failed: %s (code=%s, request_id=%s)",
                action, result.error.message, result.error.code, result.error.request_id,
            )
        return result

    async def aclose(self) -> None:
        await self._http.aclose()
