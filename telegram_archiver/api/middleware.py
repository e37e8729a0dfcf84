"""
Telegram API middleware.

Sits between the archive service and the Telegram API client: converts
Telethon entities and messages into API models, hands out session-scoped
file ids, runs downloads in the background and publishes their progress
on a single update queue shared with every other Telegram update.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional, Tuple
from functools import wraps

from telethon import events
from telethon.tl.types import (
    User, Chat, Channel, Message,
    MessageMediaPhoto, MessageMediaDocument,
    PhotoEmpty, DocumentEmpty,
    PhotoSizeEmpty, PhotoPathSize, PhotoSizeProgressive,
    PhotoCachedSize, PhotoStrippedSize,
    DocumentAttributeAudio, DocumentAttributeVideo,
    DocumentAttributeSticker, DocumentAttributeAnimated
)
from telethon.utils import get_display_name

from telegram_archiver.api.client import TelegramApiClient, TelegramSessionError
from telegram_archiver.api.models import (
    ChatModel,
    ContentModel,
    ContentType,
    DownloadRequest,
    FileUpdate,
    MessageModel,
    PhotoSizeModel,
    RawUpdate,
)

logger = logging.getLogger(__name__)


def handle_telegram_errors(func):
    """Decorator turning Telegram API errors into TelegramSessionError."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except TelegramSessionError:
            raise
        except Exception as e:
            logger.error(f"Telegram API error in {func.__name__}: {e}")
            raise TelegramSessionError(f"{func.__name__} failed: {e}") from e
    return wrapper


def _photo_size_bytes(size: Any) -> int:
    """Byte size reported by one photo size variant."""
    if isinstance(size, PhotoSizeProgressive):
        return max(size.sizes, default=0)
    if isinstance(size, (PhotoCachedSize, PhotoStrippedSize)):
        return len(size.bytes)
    return getattr(size, "size", 0) or 0


class TelegramMiddleware:
    """Middleware for Telegram API operations."""

    def __init__(
        self,
        client: TelegramApiClient,
        download_dir: str,
        queue_size: int = 10000
    ):
        """Initialize the middleware with a Telegram client.

        Args:
            client: Initialized Telegram API client
            download_dir: Directory downloaded files are written to
            queue_size: Capacity of the update queue
        """
        self.client = client
        self.download_dir = download_dir
        self.updates: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._files: Dict[int, Tuple[Message, Optional[str]]] = {}
        self._next_file_id = 1
        self._downloads: Dict[int, asyncio.Task] = {}
        self._entities: Dict[int, Any] = {}

    async def setup(self) -> None:
        """Connect to Telegram and start forwarding updates."""
        os.makedirs(self.download_dir, exist_ok=True)
        await self.client.connect()
        self.client.add_event_handler(self._handle_raw_update, events.Raw)

    async def _handle_raw_update(self, update: Any) -> None:
        """Forward an unrelated Telegram update onto the update queue."""
        self._publish_nowait(RawUpdate(name=type(update).__name__))

    def _publish_nowait(self, update: Any) -> None:
        try:
            self.updates.put_nowait(update)
        except asyncio.QueueFull:
            logger.debug(f"Update queue full, dropping {update!r}")

    @handle_telegram_errors
    async def get_chat_ids(self, limit: int = 100) -> List[int]:
        """Get the ids of the chats visible to this account.

        Args:
            limit: Maximum number of chats to retrieve

        Returns:
            List[int]: Chat ids, most recently active first
        """
        dialogs = await self.client.get_dialogs(limit=limit)
        for dialog in dialogs:
            self._entities[dialog.id] = dialog.entity
        return [dialog.id for dialog in dialogs]

    @handle_telegram_errors
    async def get_chat(self, chat_id: int) -> ChatModel:
        """Resolve a chat id to its chat model."""
        entity = self._entities.get(chat_id)
        if entity is None:
            entity = await self.client.get_entity(chat_id)
            self._entities[chat_id] = entity
        return self.process_chat_entity(chat_id, entity)

    @handle_telegram_errors
    async def get_chat_history(
        self,
        chat_id: int,
        from_message_id: int = 0,
        limit: int = 50
    ) -> List[MessageModel]:
        """Get a page of messages older than ``from_message_id``, newest first.

        File ids handed out for the previous page stop being valid, unless
        their download is still running.

        Args:
            chat_id: Chat to read
            from_message_id: Exclusive upper bound on message ids (0 for the newest)
            limit: Maximum number of messages to retrieve

        Returns:
            List[MessageModel]: Messages; empty once history is exhausted
        """
        self.release_files()
        entity = self._entities.get(chat_id, chat_id)
        messages = await self.client.get_messages(entity, limit=limit, offset_id=from_message_id)
        return [self.process_message(message, chat_id) for message in messages]

    def process_chat_entity(self, chat_id: int, entity: Any) -> ChatModel:
        """Convert a chat entity into a chat model.

        Args:
            chat_id: Id the chat was requested with
            entity: Chat entity from Telegram API

        Returns:
            ChatModel: Standardized chat representation
        """
        if isinstance(entity, User):
            title = get_display_name(entity)
        elif isinstance(entity, (Chat, Channel)):
            title = entity.title
        else:
            logger.warning(f"Unknown chat type: {type(entity)}")
            title = get_display_name(entity)

        return ChatModel(id=chat_id, title=title or "")

    def process_message(self, message: Message, chat_id: int) -> MessageModel:
        """Convert a message into a message model.

        Every downloadable file in the message is registered and gets a
        file id, valid until the next history page is fetched.
        """
        return MessageModel(
            id=message.id,
            chat_id=chat_id,
            date=int(message.date.timestamp()),
            content=self._extract_content(message)
        )

    def _extract_content(self, message: Message) -> ContentModel:
        """Extract the content variant of a message.

        Args:
            message: Message from Telegram API

        Returns:
            ContentModel: Content variant with registered file ids
        """
        media = getattr(message, "media", None)

        if isinstance(media, MessageMediaPhoto):
            photo = media.photo
            if photo is None or isinstance(photo, PhotoEmpty):
                return ContentModel()
            sizes = [
                PhotoSizeModel(
                    file_id=self.register_file(message, size.type),
                    size=_photo_size_bytes(size)
                )
                for size in photo.sizes
                if not isinstance(size, (PhotoSizeEmpty, PhotoPathSize))
            ]
            return ContentModel(type=ContentType.PHOTO, sizes=sizes)

        if isinstance(media, MessageMediaDocument):
            doc = media.document
            if doc is None or isinstance(doc, DocumentEmpty):
                return ContentModel()

            animated = False
            content_type = None
            for attr in doc.attributes:
                if isinstance(attr, DocumentAttributeSticker):
                    return ContentModel()
                elif isinstance(attr, DocumentAttributeAnimated):
                    animated = True
                elif isinstance(attr, DocumentAttributeVideo):
                    if attr.round_message:
                        content_type = ContentType.VIDEO_NOTE
                    else:
                        content_type = ContentType.VIDEO
                elif isinstance(attr, DocumentAttributeAudio) and content_type is None:
                    if attr.voice:
                        content_type = ContentType.VOICE_NOTE
                    else:
                        content_type = ContentType.AUDIO

            if animated:
                content_type = ContentType.ANIMATION
            return ContentModel(
                type=content_type or ContentType.DOCUMENT,
                file_id=self.register_file(message)
            )

        # Text, web page previews, polls, service messages and the like
        return ContentModel()

    def register_file(self, message: Message, thumb: Optional[str] = None) -> int:
        """Register a downloadable file and return its file id.

        ``thumb`` is the type of the photo size to download. Telethon only
        resolves progressive sizes by their type.
        """
        file_id = self._next_file_id
        self._next_file_id += 1
        self._files[file_id] = (message, thumb)
        return file_id

    def release_files(self) -> None:
        """Forget every registered file that is not being downloaded."""
        self._files = {
            file_id: entry
            for file_id, entry in self._files.items()
            if file_id in self._downloads
        }

    async def download_file(self, request: DownloadRequest) -> None:
        """Start downloading a file in the background.

        Progress and completion are published on ``updates`` as FileUpdate
        objects. Synchronous requests always start a new download; an
        asynchronous request for a file that is already downloading is
        merged with the running one.

        Raises:
            TelegramSessionError: If the file id is unknown
        """
        if request.file_id not in self._files:
            raise TelegramSessionError(f"Unknown file id {request.file_id}")
        if not request.synchronous and request.file_id in self._downloads:
            return

        logger.debug(f"Starting download of file {request.file_id} (priority {request.priority})")
        task = asyncio.create_task(self._run_download(request.file_id))
        self._downloads[request.file_id] = task
        task.add_done_callback(lambda done: self._forget_download(request.file_id, done))

    def _forget_download(self, file_id: int, task: asyncio.Task) -> None:
        if self._downloads.get(file_id) is task:
            del self._downloads[file_id]

    async def _run_download(self, file_id: int) -> None:
        message, thumb = self._files[file_id]

        def progress(current: int, total: int) -> None:
            self._publish_nowait(FileUpdate(file_id=file_id, size=current))

        try:
            path = await self.client.download_media(
                message,
                file=self.download_dir,
                thumb=thumb,
                progress_callback=progress
            )
            if not path:
                update = FileUpdate(file_id=file_id, error="Telegram returned no file")
            else:
                update = FileUpdate(
                    file_id=file_id,
                    size=os.path.getsize(path),
                    path=path,
                    is_downloading_completed=True
                )
        except Exception as e:
            logger.error(f"Failed to download file {file_id}: {e}")
            update = FileUpdate(file_id=file_id, error=str(e))

        await self.updates.put(update)

    async def close(self) -> None:
        """Disconnect from Telegram and close the update stream."""
        await self.client.disconnect()
        try:
            self.updates.put_nowait(None)
        except asyncio.QueueFull:
            logger.warning("Update queue full, could not signal close")
