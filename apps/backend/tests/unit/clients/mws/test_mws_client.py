import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qsl

import httpx

from apps.backend.clients.http import TransportResponse
from apps.backend.clients.mws.base import MWSClient
from apps.backend.clients.mws.config import Credentials, MWSConfig
from apps.backend.clients.mws.environment import EnvironmentInfo
from apps.backend.clients.mws.errors import ConfigurationError, ServiceError, TransportError
from apps.backend.clients.mws.response import Failure, Success
from apps.backend.clients.mws.signer import FORM_CONTENT_TYPE, XML_CONTENT_TYPE

FIXED_NOW = datetime(2024, 1, 1, 11, 0, 0, tzinfo=timezone.utc)
ENVIRONMENT = EnvironmentInfo(language="Python/3.12.1", platform="Linux/x86_64/6.1.0")
ERROR_BODY = (
    b"<ErrorResponse><Error><Type>Sender</Type><Code>X</Code><Message>bad</Message></Error>"
    b"<RequestID>1</RequestID></ErrorResponse>"
)


def _make_config(**overrides) -> MWSConfig:
    return MWSConfig(
        credentials=Credentials(
            access_key="AKIAEXAMPLE",
            secret_key="secret-key",
            seller_id="SELLER123",
            auth_token="amzn.mws.token",
        ),
        marketplace_ids=("A", "B", "C"),
        **overrides,
    )


def _make_transport_response(content=b"<Ok/>", status_code=200, headers=None) -> TransportResponse:
    return TransportResponse(status_code=status_code, headers=headers or {}, content=content)


class TestMWSClientInit:
    def test_rejects_foreign_base_url(self):
        with pytest.raises(ConfigurationError, match="https://mws.amazonservices"):
            MWSClient(_make_config(base_url="https://example.com"), http=AsyncMock())

    def test_accepts_regional_base_url(self):
        client = MWSClient(_make_config(base_url="https://mws.amazonservices.co.uk"), http=AsyncMock())
        assert client.config.base_url == "https://mws.amazonservices.co.uk"

    def test_rejects_empty_application_name(self):
        with pytest.raises(ConfigurationError, match="name"):
            MWSClient(_make_config(application_name=""), http=AsyncMock())

    def test_rejects_empty_application_version(self):
        with pytest.raises(ConfigurationError, match="version"):
            MWSClient(_make_config(application_version=""), http=AsyncMock())

    def test_user_agent_uses_injected_environment(self):
        client = MWSClient(_make_config(application_name="MyApp", application_version="2.0"), AsyncMock(), ENVIRONMENT)
        assert client.user_agent == "MyApp/2.0 (Language=Python/3.12.1; Platform=Linux/x86_64/6.1.0)"

    def test_detects_environment_when_not_injected(self):
        with patch("apps.backend.clients.mws.base.EnvironmentInfo.detect", return_value=ENVIRONMENT) as mock_detect:
            client = MWSClient(_make_config(), AsyncMock())
        mock_detect.assert_called_once()
        assert client.user_agent.endswith("(Language=Python/3.12.1; Platform=Linux/x86_64/6.1.0)")


class TestMWSClientSend:
    def setup_method(self):
        self.mock_http = AsyncMock()
        self.mock_http.request.return_value = _make_transport_response()
        self.client = MWSClient(_make_config(), http=self.mock_http, environment=ENVIRONMENT)

    async def test_form_request_posts_encoded_body(self):
        await self.client.send("ListOrders", "/Orders/2013-09-01", {"CreatedAfter": "2024-01-01"}, now=FIXED_NOW)

        call = self.mock_http.request.call_args
        assert call.args == ("POST", "/Orders/2013-09-01")
        assert call.kwargs["headers"] == {
            "User-Agent": self.client.user_agent,
            "Content-Type": FORM_CONTENT_TYPE,
        }
        params = dict(parse_qsl(call.kwargs["content"]))
        assert params["Action"] == "ListOrders"
        assert params["Version"] == "2013-09-01"
        assert params["Timestamp"] == "2024-01-01T10:58:00+00:00"
        assert params["MarketplaceIdList.Id.1"] == "A"
        assert params["MarketplaceIdList.Id.3"] == "C"
        assert "Signature" in params

    async def test_xml_request_puts_params_in_query_and_xml_in_body(self):
        xml = "<AmazonEnvelope/>"
        await self.client.send("SubmitFeed", "/Feeds/2009-01-01", {"xml": xml, "FeedType": "_POST_PRODUCT_DATA_"}, now=FIXED_NOW)

        call = self.mock_http.request.call_args
        path, query = call.args[1].split("?", 1)
        assert path == "/Feeds/2009-01-01"
        assert call.kwargs["headers"]["Content-Type"] == XML_CONTENT_TYPE
        assert call.kwargs["content"] == xml
        params = dict(parse_qsl(query))
        assert params["FeedType"] == "_POST_PRODUCT_DATA_"
        assert "ContentMD5Value" in params
        assert "xml" not in params

    async def test_returns_parsed_success(self):
        self.mock_http.request.return_value = _make_transport_response(
            content=b"<GetServiceStatusResponse><GetServiceStatusResult><Status>GREEN</Status></GetServiceStatusResult></GetServiceStatusResponse>"
        )
        result = await self.client.send("GetServiceStatus", "/Orders/2013-09-01")

        assert isinstance(result, Success)
        assert result.payload["GetServiceStatusResponse"]["GetServiceStatusResult"]["Status"] == "GREEN"

    async def test_returns_raw_success_for_flat_file(self):
        self.mock_http.request.return_value = _make_transport_response(content=b"sku\tqty\nA1\t3\n")
        result = await self.client.send("GetReport", "/", {"ReportId": "1"})

        assert isinstance(result, Success)
        assert result.payload == b"sku\tqty\nA1\t3\n"

    async def test_returns_failure_with_headers_and_status(self):
        self.mock_http.request.return_value = _make_transport_response(
            content=ERROR_BODY, status_code=400, headers={"x-mws-request-id": "1"}
        )
        with patch("apps.backend.clients.mws.base.logger") as mock_logger:
            result = await self.client.send("ListOrders", "/Orders/2013-09-01")
            mock_logger.warning.assert_called_once()

        assert isinstance(result, Failure)
        assert result.error.message == "bad"
        assert result.error.error_type == "Sender"
        assert result.error.code == "X"
        assert result.error.request_id == "1"
        assert result.error.status_code == 400
        assert result.error.headers == {"x-mws-request-id": "1"}

    async def test_failure_unwrap_raises_service_error(self):
        self.mock_http.request.return_value = _make_transport_response(content=ERROR_BODY, status_code=400)
        result = await self.client.send("ListOrders", "/Orders/2013-09-01")
        with pytest.raises(ServiceError, match="bad"):
            result.unwrap()

    @pytest.mark.parametrize(
        "error",
        [
            httpx.TimeoutException("timed out", request=MagicMock()),
            httpx.ConnectError("refused", request=MagicMock()),
        ],
    )
    async def test_transport_errors_propagate_unchanged(self, error):
        self.mock_http.request.side_effect = error
        with pytest.raises(TransportError) as exc_info:
            await self.client.send("ListOrders", "/Orders/2013-09-01")
        assert exc_info.value is error

    async def test_aclose_closes_transport(self):
        await self.client.aclose()
        self.mock_http.aclose.assert_awaited_once()
