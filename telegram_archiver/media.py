"""
Attachment classification and archive naming.

Pure functions: no I/O and no Telegram calls.
"""

import os
import re
import unicodedata
from datetime import datetime
from typing import Optional, Tuple

from telegram_archiver.api.models import ContentType, MediaKind, MessageModel

MEDIA_KINDS = {
    ContentType.ANIMATION: MediaKind.MOV,
    ContentType.AUDIO: MediaKind.AUDIO,
    ContentType.DOCUMENT: MediaKind.FILE,
    ContentType.PHOTO: MediaKind.IMG,
    ContentType.VIDEO: MediaKind.MOV,
    ContentType.VIDEO_NOTE: MediaKind.MOV,
    ContentType.VOICE_NOTE: MediaKind.AUDIO,
}

DATE_FORMAT = "%Y-%m-%d_%H-%M-%S"


def classify_attachment(message: MessageModel) -> Optional[Tuple[int, MediaKind]]:
    """Return the file id and media kind of the attachment in a message.

    For photos the largest size variant is chosen; on equal sizes the first
    one listed wins. Messages without a downloadable attachment, including
    photos without any size variant, yield None.
    """
    content = message.content
    kind = MEDIA_KINDS.get(content.type)
    if kind is None:
        return None

    if content.type == ContentType.PHOTO:
        file_id = None
        largest = 0
        for size in content.sizes:
            if size.size > largest:
                largest = size.size
                file_id = size.file_id
    else:
        file_id = content.file_id

    if file_id is None:
        return None
    return file_id, kind


def slugify(text: str) -> str:
    """Convert text to a filesystem-safe slug.

    >>> slugify("Team Chat")
    'team-chat'
    """
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def build_destination_name(
    output_dir: str,
    date_time: datetime,
    media_kind: MediaKind,
    chat_title: str,
    basename: str
) -> str:
    """Path an archived file is moved to.

    >>> build_destination_name("output", datetime(2023, 1, 5, 8, 10, 52), MediaKind.IMG, "Team Chat", "a.jpg")
    'output/2023-01-05_08-10-52--IMG_Telegram_team-chat_a.jpg'
    """
    filename = (
        f"{date_time.strftime(DATE_FORMAT)}--{media_kind.value}"
        f"_Telegram_{slugify(chat_title)}_{basename}"
    )
    return os.path.join(output_dir, filename)
