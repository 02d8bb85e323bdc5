#!/usr/bin/env python3
import logging
from dotenv import load_dotenv

from config.settings import get_app_config
from timetabling.consumer import start_consumer

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    # Load environment variables
    load_dotenv()

    app_config = get_app_config()
    level = logging.DEBUG if app_config["debug"] else getattr(logging, app_config["log_level"].upper(), logging.INFO)

    # Configure logging
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        logger.info("Starting timetable scheduler consumer")
        start_consumer()
    except KeyboardInterrupt:
        logger.info("Consumer stopped by user")
    except Exception as e:
        logger.error(f"An error occurred: {e}", exc_info=True)
