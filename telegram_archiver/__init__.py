"""
Telegram Media Archiver.

Walks the history of every chat of a Telegram account and archives the
photos, videos, audio and documents sent in it.
"""

__version__ = "1.0.0"
