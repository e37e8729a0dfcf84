"""
Configuration management for the Telegram archiver.

Loads environment variables and provides configuration settings.
"""

import os
import logging
from datetime import timezone, tzinfo
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

# Directory paths
STORE_DIR = os.getenv("STORE_DIR", "telegram_database")
SESSION_FILE = os.getenv("SESSION_FILE", os.path.join(STORE_DIR, "telegram_session"))
DOWNLOAD_DIR = os.getenv("DOWNLOAD_DIR", os.path.join(STORE_DIR, "downloads"))
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "output")

# API credentials
API_ID = os.getenv("TELEGRAM_API_ID")
API_HASH = os.getenv("TELEGRAM_API_HASH")
PHONE = os.getenv("TELEGRAM_PHONE")

# Archive settings
ARCHIVE_TIMEZONE = os.getenv("ARCHIVE_TIMEZONE", "UTC")
DEFAULT_DAYS_BACK = 9999
CHAT_LIMIT = int(os.getenv("CHAT_LIMIT", "100"))
HISTORY_BATCH_SIZE = int(os.getenv("HISTORY_BATCH_SIZE", "50"))
UPDATE_QUEUE_SIZE = int(os.getenv("UPDATE_QUEUE_SIZE", "10000"))

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
TELETHON_LOG_LEVEL = os.getenv("TELETHON_LOG_LEVEL", "WARNING")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Initialize logging for the application and quiet down Telethon."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper()),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()]
    )
    logging.getLogger("telethon").setLevel(getattr(logging, TELETHON_LOG_LEVEL.upper()))


def get_timezone(name: str = ARCHIVE_TIMEZONE) -> tzinfo:
    """Time zone message dates are interpreted in."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def validate_credentials() -> int:
    """Check the API credentials and return the API id as an integer."""
    if not API_ID or not API_HASH:
        logger.error(
            "TELEGRAM_API_ID and TELEGRAM_API_HASH environment variables must be set"
        )
        logger.error("Get them from https://my.telegram.org/auth")
        raise ValueError("Missing API credentials")
    try:
        return int(API_ID)
    except ValueError:
        raise ValueError(f"TELEGRAM_API_ID must be a number, got {API_ID!r}")
