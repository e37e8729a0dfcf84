"""
API models for data transfer.

Defines Pydantic models for the chats, messages and file updates exchanged
between the Telegram session and the archive service.
"""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel


class ContentType(str, Enum):
    """Closed set of message content variants."""
    ANIMATION = "animation"
    AUDIO = "audio"
    DOCUMENT = "document"
    PHOTO = "photo"
    VIDEO = "video"
    VIDEO_NOTE = "video_note"
    VOICE_NOTE = "voice_note"
    OTHER = "other"


class MediaKind(str, Enum):
    """Tag used in archived file names."""
    IMG = "IMG"
    MOV = "MOV"
    AUDIO = "Audio"
    FILE = "File"


class ChatModel(BaseModel):
    """Model representing a Telegram chat."""
    id: int
    title: str


class PhotoSizeModel(BaseModel):
    """One resolution variant of a photo."""
    file_id: int
    size: int


class ContentModel(BaseModel):
    """Content payload of a message.

    Photos carry their resolution variants in ``sizes``; every other
    attachment variant carries a single ``file_id``.
    """
    type: ContentType = ContentType.OTHER
    file_id: Optional[int] = None
    sizes: List[PhotoSizeModel] = []


class MessageModel(BaseModel):
    """Model representing a historical Telegram message."""
    id: int
    chat_id: int
    date: int
    content: ContentModel = ContentModel()


class DownloadRequest(BaseModel):
    """Model for download requests."""
    file_id: int
    priority: int = 1
    synchronous: bool = True


class FileUpdate(BaseModel):
    """Update published by the session while a file is being downloaded."""
    file_id: int
    size: int = 0
    path: Optional[str] = None
    is_downloading_completed: bool = False
    error: Optional[str] = None


class RawUpdate(BaseModel):
    """Any other update received from Telegram."""
    name: str
