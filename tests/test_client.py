from unittest.mock import AsyncMock

import pytest
from telethon.errors import PhoneCodeInvalidError

from telegram_archiver.api import TelegramApiClient, TelegramSessionError


@pytest.fixture
def api_client():
    """Telegram API client backed by an in-memory session."""
    return TelegramApiClient(None, 12345, "0123456789abcdef")


class TestTelegramApiClient:
    """Tests for error handling in TelegramApiClient."""

    async def test_authorization_check_failure_is_a_session_error(self, api_client):
        api_client.client.is_user_authorized = AsyncMock(side_effect=ConnectionError("reset"))

        with pytest.raises(TelegramSessionError) as exc_info:
            await api_client.is_authorized()

        assert "reset" in str(exc_info.value)

    async def test_send_code_failure_is_a_session_error(self, api_client):
        api_client.client.send_code_request = AsyncMock(side_effect=ConnectionError("reset"))

        with pytest.raises(TelegramSessionError):
            await api_client.send_code_request("+15550000000")

    async def test_get_me_failure_is_a_session_error(self, api_client):
        api_client.client.get_me = AsyncMock(side_effect=OSError("network down"))

        with pytest.raises(TelegramSessionError):
            await api_client.get_me()

    async def test_sign_in_passes_telegram_errors_through(self, api_client):
        api_client.client.sign_in = AsyncMock(side_effect=PhoneCodeInvalidError(request=None))

        with pytest.raises(PhoneCodeInvalidError):
            await api_client.sign_in(phone="+15550000000", code="00000")

    async def test_sign_in_transport_failure_is_a_session_error(self, api_client):
        api_client.client.sign_in = AsyncMock(side_effect=ConnectionError("reset"))

        with pytest.raises(TelegramSessionError):
            await api_client.sign_in(phone="+15550000000", code="12345")
