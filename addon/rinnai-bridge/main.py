#!/usr/bin/env python3
"""
Rinnai Bridge - vstupní bod aplikace.
"""

import asyncio
import logging
import sys

from config import (
    BOILER_HOST,
    BOILER_PORT,
    COMMAND_TIMEOUT_S,
    LIVENESS_TIMEOUT_S,
    LOG_FILE,
    LOG_LEVEL,
    MQTT_HOST,
    MQTT_PORT,
    RESTAPI_HOST,
    RESTAPI_PORT,
)
from bridge import RinnaiBridge

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Logging setup
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format=LOG_FORMAT,
    datefmt=LOG_DATEFMT
)
if LOG_FILE:
    _file_handler = logging.FileHandler(LOG_FILE)
    _file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))
    logging.getLogger().addHandler(_file_handler)

logger = logging.getLogger(__name__)


async def main():
    """Hlavní funkce."""
    logger.info("=" * 60)
    logger.info("Rinnai Bridge - local boiler server with REST & MQTT")
    logger.info("=" * 60)

    logger.info("📋 Konfigurace:")
    logger.info(f"   Boiler listener: {BOILER_HOST}:{BOILER_PORT}")
    logger.info(
        f"   REST API: {RESTAPI_HOST}:{RESTAPI_PORT}"
        if RESTAPI_PORT > 0 else "   REST API: Disabled"
    )
    logger.info(f"   MQTT: {f'{MQTT_HOST}:{MQTT_PORT}' if MQTT_HOST else 'Disabled'}")
    logger.info(f"   Liveness timeout: {LIVENESS_TIMEOUT_S}s")
    logger.info(f"   Command timeout: {COMMAND_TIMEOUT_S}s")
    logger.info(f"   Log level: {LOG_LEVEL}")

    bridge = RinnaiBridge()

    try:
        await bridge.start()
    except KeyboardInterrupt:
        logger.info("👋 Shutting down...")
    except Exception as e:
        logger.error(f"❌ Fatal error: {e}", exc_info=True)
        sys.exit(1)


def run():
    """Entry point pro console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    run()
