"""
DeliveryMaster relay entry point
Serves the relay API in front of the Apps Script backend.
"""

import uvicorn
from loguru import logger

from relay.proxy import create_app
from relay.settings import global_settings

app = create_app(global_settings)


def main() -> None:
    """Run the relay with uvicorn."""
    logger.info(
        f"Starting DeliveryMaster relay on {global_settings.host}:{global_settings.port}"
    )
    try:
        uvicorn.run(app, host=global_settings.host, port=global_settings.port)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
    finally:
        logger.info("DeliveryMaster relay stopped")


if __name__ == "__main__":
    main()
