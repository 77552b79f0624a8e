import asyncio
import os
import logging
from dotenv import load_dotenv
from apps.backend.clients.mws.base import MWSClient
from apps.backend.clients.mws.config import load_mws_config
from apps.backend.clients.mws.factory import build_mws_client

ORDERS_VERSION_URI = "/Orders/2013-09-01"


def configure_logging() -> logging.Logger:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logging.getLogger(__name__)


async def check_service_status(client: MWSClient, logger: logging.Logger) -> None:
    try:
        result = await client.send("GetServiceStatus", ORDERS_VERSION_URI)
    finally:
        await client.aclose()
    if result.ok:
        logger.info("MWS Orders service status: %s", result.payload)
    else:
        logger.error("MWS reported an error: %s", result.error.message)


def main():
    load_dotenv()

    logger = configure_logging()

    try:
        mws_config = load_mws_config()
        logger.debug(f"MWS config loaded: {mws_config}")
        client = build_mws_client(mws_config)
    except ValueError as e:
        logger.error(f"Error loading MWS config: {e}")
        logger.info("Aborting... Please set the required environment variables and try again.")
        return

    asyncio.run(check_service_status(client, logger))


if __name__ == "__main__":
    main()
