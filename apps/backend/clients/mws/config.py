import os
from dataclasses import dataclass

from apps.backend.clients.mws.errors import ConfigurationError

DEFAULT_APPLICATION_NAME = "MarketFitMWSClient"
DEFAULT_APPLICATION_VERSION = "1.0"
DEFAULT_BASE_URL = "https://mws.amazonservices.com"

# Every MWS endpoint shares this prefix.
BASE_URL_PREFIX = "https://mws.amazonservices"

MWS_ENDPOINTS = {
    "US": "https://mws.amazonservices.com",
    "CA": "https://mws.amazonservices.ca",
    "MX": "https://mws.amazonservices.com.mx",
    "UK": "https://mws.amazonservices.co.uk",
    "IN": "https://mws.amazonservices.in",
    "JP": "https://mws.amazonservices.jp",
    "CN": "https://mws.amazonservices.com.cn",
    "AU": "https://mws.amazonservices.com.au",
}


@dataclass(frozen=True)
class Credentials:
    """ Seller credentials used to sign every request. """
    access_key: str
    secret_key: str
    seller_id: str
    auth_token: str

    def __repr__(self) -> str:
        return f"Credentials(access_key={self.access_key!r}, seller_id={self.seller_id!r})"


@dataclass(frozen=True)
class MWSConfig:
    """ Configuration for the MWS client. """
    credentials: Credentials
    marketplace_ids: tuple[str, ...]
    application_name: str = DEFAULT_APPLICATION_NAME
    application_version: str = DEFAULT_APPLICATION_VERSION
    base_url: str = DEFAULT_BASE_URL


def validate_mws_config(config: MWSConfig) -> ConfigurationError | None:
    """Returns the first configuration problem found, or None when the config is usable."""
    if BASE_URL_PREFIX not in (config.base_url or ""):
        return ConfigurationError(
            f'Base URL must contain "{BASE_URL_PREFIX}", received "{config.base_url}"'
        )
    if not config.application_name:
        return ConfigurationError("Application name cannot be empty")
    if not config.application_version:
        return ConfigurationError("Application version cannot be empty")
    return None


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if value is None:
        raise ValueError(f"Missing required environment variable: {key}")
    return value


def _parse_marketplace_ids(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _resolve_base_url() -> str:
    base_url = os.getenv("MWS_BASE_URL")
    if base_url:
        return base_url
    region = os.getenv("MWS_REGION")
    if region is None:
        return DEFAULT_BASE_URL
    try:
        return MWS_ENDPOINTS[region.upper()]
    except KeyError:
        raise ValueError(
            f"Unknown MWS_REGION {region!r}. Must be one of: {', '.join(MWS_ENDPOINTS)}"
        ) from None


def load_mws_config() -> MWSConfig:
    """ Load MWS configuration from environment variables. """
    credentials = Credentials(
        access_key=_require_env("MWS_ACCESS_KEY"),
        secret_key=_require_env("MWS_SECRET_KEY"),
        seller_id=_require_env("MWS_SELLER_ID"),
        auth_token=_require_env("MWS_AUTH_TOKEN"),
    )
    return MWSConfig(
        credentials=credentials,
        marketplace_ids=_parse_marketplace_ids(_require_env("MWS_MARKETPLACE_IDS")),
        application_name=os.getenv("MWS_APPLICATION_NAME", DEFAULT_APPLICATION_NAME),
        application_version=os.getenv("MWS_APPLICATION_VERSION", DEFAULT_APPLICATION_VERSION),
        base_url=_resolve_base_url(),
    )
