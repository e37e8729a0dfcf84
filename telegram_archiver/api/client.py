"""
Telegram API client.

Handles communication with the Telegram API using the Telethon library.
"""

import logging
from typing import Optional, List, Any, Callable

from telethon import TelegramClient
from telethon.errors import RPCError
from telethon.tl.types import User, Message, Dialog

logger = logging.getLogger(__name__)


class TelegramSessionError(Exception):
    """Raised when the Telegram session fails to serve a request."""


class AuthFlowError(TelegramSessionError):
    """Raised when Telegram asks for an authentication step we do not support."""


class EventStreamClosed(TelegramSessionError):
    """Raised when the update stream closes while a download is pending."""


class DownloadError(TelegramSessionError):
    """Raised when the session reports that a file could not be downloaded."""


class TelegramApiClient:
    """Client for interacting with the Telegram API."""

    def __init__(self, session_file: str, api_id: int, api_hash: str):
        """Initialize the Telegram API client.

        Args:
            session_file: Path to the session file for authentication
            api_id: Telegram API ID
            api_hash: Telegram API hash
        """
        self.session_file = session_file
        self.api_id = api_id
        self.api_hash = api_hash
        self.client = TelegramClient(session_file, api_id, api_hash)
        self._me = None

    async def connect(self) -> None:
        """Connect to the Telegram API."""
        try:
            await self.client.connect()
        except Exception as e:
            raise TelegramSessionError(f"Failed to connect to Telegram: {e}") from e

    async def is_authorized(self) -> bool:
        """Check if the client is authorized.

        Returns:
            bool: True if authorized, False otherwise
        """
        try:
            return await self.client.is_user_authorized()
        except Exception as e:
            raise TelegramSessionError(f"Failed to check authorization: {e}") from e

    async def send_code_request(self, phone: str) -> None:
        """Send a login code to the given phone number.

        Args:
            phone: Phone number to send code to
        """
        try:
            await self.client.send_code_request(phone)
        except Exception as e:
            raise TelegramSessionError(f"Failed to send login code: {e}") from e

    async def sign_in(self, phone: Optional[str] = None, code: Optional[str] = None) -> User:
        """Sign in to Telegram with a phone number and login code.

        Telegram RPC errors are left to the caller, which maps the ones that
        signal an unsupported flow. Anything else is a session error.
        """
        try:
            return await self.client.sign_in(phone=phone, code=code)
        except RPCError:
            raise
        except Exception as e:
            raise TelegramSessionError(f"Failed to sign in: {e}") from e

    async def get_me(self) -> Optional[User]:
        """Get the current user.

        Returns:
            User: Current user object
        """
        if not self._me:
            try:
                self._me = await self.client.get_me()
            except Exception as e:
                raise TelegramSessionError(f"Failed to get current user: {e}") from e
        return self._me

    async def get_dialogs(self, limit: int = 100) -> List[Dialog]:
        """Get dialogs (chats) from Telegram.

        Args:
            limit: Maximum number of dialogs to retrieve

        Returns:
            List[Dialog]: List of dialogs
        """
        return await self.client.get_dialogs(limit=limit)

    async def get_entity(self, entity_id: Any) -> Any:
        """Get an entity (User, Chat, or Channel) from Telegram."""
        return await self.client.get_entity(entity_id)

    async def get_messages(self, entity: Any, limit: int = 50, offset_id: int = 0) -> List[Message]:
        """Get a page of messages from a chat, newest first.

        Args:
            entity: Chat entity
            limit: Maximum number of messages to retrieve
            offset_id: Only return messages older than this ID (0 for the newest)

        Returns:
            List[Message]: List of messages
        """
        return await self.client.get_messages(entity, limit=limit, offset_id=offset_id)

    async def download_media(
        self,
        message: Message,
        file: str,
        thumb: Any = None,
        progress_callback: Optional[Callable[[int, int], Any]] = None
    ) -> Optional[str]:
        """Download media from a message.

        Args:
            message: Message containing media
            file: Directory or file path to save to
            thumb: Photo size to download instead of the default one
            progress_callback: Called with (downloaded_bytes, total_bytes)

        Returns:
            str: Path to downloaded file
        """
        return await self.client.download_media(
            message,
            file=file,
            thumb=thumb,
            progress_callback=progress_callback
        )

    def add_event_handler(self, callback: Callable, event: Any) -> None:
        """Add an event handler.

        Args:
            callback: Callback function to handle the event
            event: Event to handle
        """
        self.client.add_event_handler(callback, event)

    async def disconnect(self) -> None:
        """Disconnect from the Telegram API."""
        await self.client.disconnect()
