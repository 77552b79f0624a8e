from apps.backend.clients.http import HttpClient
from apps.backend.clients.mws.base import MWSClient
from apps.backend.clients.mws.config import MWSConfig, load_mws_config
from apps.backend.clients.mws.environment import EnvironmentInfo


def build_mws_client(
    config: MWSConfig,
    retries: int = 3,
    backoff_factor: float = 1.0,
    timeout: tuple[int, int] = (5, 30),
    environment: EnvironmentInfo | None = None,
) -> MWSClient:
    """
    Wires the transport into an MWSClient and returns it ready to use.

    Accepts optional HttpClient parameters so callers can tune transport behaviour
    (e.g. stricter timeouts or more retries) without touching internal wiring.
    """
    http = HttpClient(config.base_url, retries=retries, backoff_factor=backoff_factor, timeout=timeout)
    return MWSClient(config, http, environment=environment)


def create_mws_client(
    retries: int = 3,
    backoff_factor: float = 1.0,
    timeout: tuple[int, int] = (5, 30),
) -> MWSClient:
    """
    Convenience function that loads config from environment variables
    and returns a ready-to-use MWSClient.

    Raises ValueError if any required environment variable is missing,
    ConfigurationError (a ValueError) if the loaded values are invalid.
    """
    config = load_mws_config()
    return build_mws_client(config, retries=retries, backoff_factor=backoff_factor, timeout=timeout)
