"""
Telegram archiver main entry point.

Connects to Telegram, logs in if needed and archives the attachments of
every chat, newest first, down to the requested number of days back.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from telethon.errors import (
    PhoneNumberUnoccupiedError,
    RPCError,
    SessionPasswordNeededError,
)
from telethon.utils import get_display_name

from telegram_archiver import config
from telegram_archiver.api import (
    AuthFlowError,
    TelegramApiClient,
    TelegramMiddleware,
    TelegramSessionError,
)
from telegram_archiver.service import ArchiveService

# Initialize logger
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse the command line: a single optional number of days back."""
    parser = argparse.ArgumentParser(
        prog="telegram-archiver",
        description="Archive photos, videos, audio and documents from your Telegram chats."
    )
    parser.add_argument(
        "days_back",
        nargs="?",
        type=int,
        default=config.DEFAULT_DAYS_BACK,
        help="number of days back to process attachments (default: %(default)s)"
    )
    return parser.parse_args(argv)


async def login_flow(client: TelegramApiClient, phone: Optional[str] = None) -> None:
    """Interactive login flow for Telegram.

    Only the phone number + login code flow is supported. Telegram asking
    for a two-step verification password or for a sign up raises
    AuthFlowError, as does any other error Telegram returns for the login.
    """
    if await client.is_authorized():
        logger.info("Already logged in")
        return

    if not phone:
        print(
            "Please enter your telegram phone number (including +NNN, where NNN is "
            "your country code); this should only happen on the first run"
        )
        phone = input("Phone number: ").strip()

    await client.send_code_request(phone)
    print("Please enter the auth code that you just got on Telegram.")
    code = input("Code: ").strip()

    try:
        await client.sign_in(phone=phone, code=code)
    except SessionPasswordNeededError as e:
        raise AuthFlowError(
            "Auth flow weirdness: Telegram is asking for a two-step verification password"
        ) from e
    except PhoneNumberUnoccupiedError as e:
        raise AuthFlowError(
            "Auth flow weirdness: Telegram is asking for a sign up. "
            "Please don't use this program to sign up for Telegram."
        ) from e
    except RPCError as e:
        raise AuthFlowError(f"Login failed: {e}") from e

    if not await client.is_authorized():
        raise AuthFlowError("Login failed, not authorized")
    logger.info("Logged in successfully")


async def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point.

    Returns:
        int: Process exit status
    """
    args = parse_args(argv)
    config.setup_logging()

    try:
        api_id = config.validate_credentials()
    except ValueError as e:
        logger.error(str(e))
        return 1

    os.makedirs(os.path.dirname(config.SESSION_FILE) or ".", exist_ok=True)
    client = TelegramApiClient(config.SESSION_FILE, api_id, config.API_HASH)
    session = TelegramMiddleware(
        client,
        config.DOWNLOAD_DIR,
        queue_size=config.UPDATE_QUEUE_SIZE
    )

    try:
        await session.setup()
        await login_flow(client, config.PHONE)
        logger.info("client authorized")

        me = await client.get_me()
        logger.info(f"client info: {get_display_name(me)} (id {me.id})")

        service = ArchiveService(
            session,
            output_dir=config.OUTPUT_DIR,
            tz=config.get_timezone(),
            batch_size=config.HISTORY_BATCH_SIZE
        )
        await service.archive_all_chats(
            days_back=args.days_back,
            chat_limit=config.CHAT_LIMIT
        )
    except (TelegramSessionError, OSError) as e:
        logger.error(f"Aborting: {e}")
        return 1
    finally:
        await session.close()
        logger.info("client closed")

    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
