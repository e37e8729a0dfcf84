"""
API module for Telegram interaction.

Provides client, middleware, and models for interacting with the Telegram API.
"""

from telegram_archiver.api.client import (
    TelegramApiClient,
    TelegramSessionError,
    AuthFlowError,
    EventStreamClosed,
    DownloadError
)
from telegram_archiver.api.middleware import TelegramMiddleware, handle_telegram_errors
from telegram_archiver.api.models import (
    ChatModel,
    ContentModel,
    ContentType,
    DownloadRequest,
    FileUpdate,
    MediaKind,
    MessageModel,
    PhotoSizeModel,
    RawUpdate
)
