"""
Service layer for the Telegram archiver.

Walks the history of each chat through the Telegram middleware and archives
every attachment it finds, one download at a time.
"""

import logging
import os
import shutil
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Optional

from telegram_archiver.api import (
    ChatModel,
    DownloadError,
    DownloadRequest,
    EventStreamClosed,
    FileUpdate,
    MediaKind,
    TelegramMiddleware,
)
from telegram_archiver.config import CHAT_LIMIT, HISTORY_BATCH_SIZE, OUTPUT_DIR
from telegram_archiver.media import build_destination_name, classify_attachment

logger = logging.getLogger(__name__)


class ArchiveService:
    """Service archiving chat attachments."""

    def __init__(
        self,
        session: TelegramMiddleware,
        output_dir: str = OUTPUT_DIR,
        tz: tzinfo = timezone.utc,
        batch_size: int = HISTORY_BATCH_SIZE
    ):
        """Initialize the service.

        Args:
            session: Telegram middleware serving chats, history and downloads
            output_dir: Directory archived files are moved into
            tz: Time zone message dates are interpreted in
            batch_size: Number of messages fetched per history page
        """
        self.session = session
        self.output_dir = output_dir
        self.tz = tz
        self.batch_size = batch_size
        os.makedirs(self.output_dir, exist_ok=True)

    async def archive_all_chats(
        self,
        days_back: Optional[int] = None,
        chat_limit: int = CHAT_LIMIT
    ) -> int:
        """Archive the attachments of every chat, one chat after the other.

        Args:
            days_back: Only archive messages newer than this many days (None for all)
            chat_limit: Maximum number of chats to process

        Returns:
            int: Number of files archived
        """
        chat_ids = await self.session.get_chat_ids(limit=chat_limit)

        archived = 0
        for chat_id in chat_ids:
            chat = await self.session.get_chat(chat_id)
            logger.info(f"Working on chat {chat.title}")
            date_since = None
            if days_back is not None:
                date_since = datetime.now(timezone.utc) - timedelta(days=days_back)
            archived += await self.archive_chat_history(chat, date_since)

        logger.info(f"Archived {archived} files from {len(chat_ids)} chats")
        return archived

    async def archive_chat_history(
        self,
        chat: ChatModel,
        date_since: Optional[datetime] = None
    ) -> int:
        """Walk a chat's history backward and archive its attachments.

        Pages are requested older than the smallest message id seen so far.
        The walk stops at the first message older than ``date_since``, since
        Telegram returns history newest first.

        Args:
            chat: Chat to walk
            date_since: Oldest message date to archive (None for no limit)

        Returns:
            int: Number of files archived from this chat
        """
        earliest_message_id = 0
        archived = 0

        while True:
            messages = await self.session.get_chat_history(
                chat.id,
                from_message_id=earliest_message_id,
                limit=self.batch_size
            )
            if not messages:
                break

            for message in messages:
                date_time = datetime.fromtimestamp(message.date, tz=self.tz)

                if date_since is not None and date_time < date_since:
                    logger.info(
                        f"Found a message with date {date_time:%Y-%m-%d %H:%M %Z}, which is older "
                        f"than we're looking for, so stopping with chat {chat.title}"
                    )
                    return archived

                if earliest_message_id == 0 or message.id < earliest_message_id:
                    earliest_message_id = message.id

                attachment = classify_attachment(message)
                if attachment is None:
                    continue

                file_id, media_kind = attachment
                await self.download_file(chat, date_time, file_id, media_kind)
                archived += 1

        return archived

    async def download_file(
        self,
        chat: ChatModel,
        date_time: datetime,
        file_id: int,
        media_kind: MediaKind
    ) -> str:
        """Download a file and move it into the archive.

        Waits for the session to report the file as fully downloaded. Any
        other update taken from the queue meanwhile is discarded.

        Args:
            chat: Chat the file was sent in
            date_time: Date of the message carrying the file
            file_id: Session file id of the file
            media_kind: Kind tag used in the archived name

        Returns:
            str: Path of the archived file

        Raises:
            DownloadError: If the session could not download the file
            EventStreamClosed: If the update stream closed while waiting
        """
        await self.session.download_file(
            DownloadRequest(file_id=file_id, priority=1, synchronous=True)
        )

        logger.info(f"Downloading {media_kind.value} id {file_id}")
        update = await self.wait_for_update(
            # A failed download ends the wait too; progress updates never do
            lambda u: (
                isinstance(u, FileUpdate)
                and u.file_id == file_id
                and (u.is_downloading_completed or u.error is not None)
            )
        )
        logger.debug(f"file message received: {update!r}")

        if update.error is not None:
            raise DownloadError(f"Could not download file {file_id}: {update.error}")

        new_filename = build_destination_name(
            self.output_dir,
            date_time,
            media_kind,
            chat.title,
            os.path.basename(update.path)
        )
        logger.info(f"Moving file from {update.path} to {new_filename}")
        shutil.move(update.path, new_filename)
        return new_filename

    async def wait_for_update(self, predicate: Callable[[Any], bool]) -> Any:
        """Take updates off the queue until one satisfies ``predicate``.

        Updates that do not match are dropped. Updates queued behind the
        match stay on the queue.

        Raises:
            EventStreamClosed: If the queue yields its closing None
        """
        while True:
            update = await self.session.updates.get()
            if update is None:
                raise EventStreamClosed("Update stream closed while waiting for a download")
            if predicate(update):
                return update
