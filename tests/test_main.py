from unittest.mock import AsyncMock, Mock, patch

import pytest
from telethon.errors import (
    PhoneCodeInvalidError,
    PhoneNumberUnoccupiedError,
    SessionPasswordNeededError,
)

from telegram_archiver import config
from telegram_archiver.api import AuthFlowError, TelegramApiClient
from telegram_archiver.main import login_flow, main, parse_args


class TestParseArgs:
    """Tests for the command line."""

    def test_defaults_to_unbounded_look_back(self):
        assert parse_args([]).days_back == config.DEFAULT_DAYS_BACK == 9999

    def test_accepts_days_back(self):
        assert parse_args(["30"]).days_back == 30

    def test_rejects_more_than_one_argument(self):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["30", "40"])

        assert exc_info.value.code == 2

    def test_rejects_non_numeric_argument(self):
        with pytest.raises(SystemExit):
            parse_args(["a week"])


@pytest.fixture
def mock_client():
    client = Mock(spec=TelegramApiClient)
    client.is_authorized = AsyncMock(side_effect=[False, True])
    client.send_code_request = AsyncMock()
    client.sign_in = AsyncMock()
    return client


class TestLoginFlow:
    """Tests for login_flow()."""

    async def test_skips_login_when_already_authorized(self, mock_client):
        mock_client.is_authorized = AsyncMock(return_value=True)

        await login_flow(mock_client, "+15550000000")

        mock_client.send_code_request.assert_not_awaited()

    async def test_signs_in_with_phone_and_code(self, mock_client):
        with patch("builtins.input", return_value=" 12345 "):
            await login_flow(mock_client, "+15550000000")

        mock_client.send_code_request.assert_awaited_once_with("+15550000000")
        mock_client.sign_in.assert_awaited_once_with(phone="+15550000000", code="12345")

    async def test_prompts_for_phone_when_not_configured(self, mock_client):
        with patch("builtins.input", side_effect=["+15551111111", "777"]):
            await login_flow(mock_client, None)

        mock_client.send_code_request.assert_awaited_once_with("+15551111111")

    async def test_password_request_is_an_auth_flow_error(self, mock_client):
        mock_client.sign_in.side_effect = SessionPasswordNeededError(request=None)

        with patch("builtins.input", return_value="12345"):
            with pytest.raises(AuthFlowError) as exc_info:
                await login_flow(mock_client, "+15550000000")

        assert "password" in str(exc_info.value)

    async def test_sign_up_request_is_an_auth_flow_error(self, mock_client):
        mock_client.sign_in.side_effect = PhoneNumberUnoccupiedError(request=None)

        with patch("builtins.input", return_value="12345"):
            with pytest.raises(AuthFlowError):
                await login_flow(mock_client, "+15550000000")

    async def test_invalid_code_is_an_auth_flow_error(self, mock_client):
        mock_client.sign_in.side_effect = PhoneCodeInvalidError(request=None)

        with patch("builtins.input", return_value="00000"):
            with pytest.raises(AuthFlowError) as exc_info:
                await login_flow(mock_client, "+15550000000")

        assert "Login failed" in str(exc_info.value)

    async def test_unauthorized_after_sign_in_is_an_auth_flow_error(self, mock_client):
        mock_client.is_authorized = AsyncMock(return_value=False)

        with patch("builtins.input", return_value="12345"):
            with pytest.raises(AuthFlowError):
                await login_flow(mock_client, "+15550000000")


class TestMain:
    """Tests for the main() exit status."""

    @pytest.fixture
    def configured(self, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "API_ID", "12345")
        monkeypatch.setattr(config, "API_HASH", "hash")
        monkeypatch.setattr(config, "PHONE", "+15550000000")
        monkeypatch.setattr(config, "SESSION_FILE", str(tmp_path / "store" / "session"))

    async def test_login_error_exits_with_status_1_and_closes(self, configured, mock_client):
        mock_client.sign_in.side_effect = PhoneCodeInvalidError(request=None)
        session = Mock()
        session.setup = AsyncMock()
        session.close = AsyncMock()

        with patch("telegram_archiver.main.TelegramApiClient", return_value=mock_client), \
                patch("telegram_archiver.main.TelegramMiddleware", return_value=session), \
                patch("builtins.input", return_value="00000"):
            status = await main(["5"])

        assert status == 1
        session.setup.assert_awaited_once()
        session.close.assert_awaited_once()

    async def test_missing_credentials_exit_with_status_1(self, monkeypatch):
        monkeypatch.setattr(config, "API_ID", None)

        assert await main([]) == 1


class TestConfig:
    """Tests for config helpers."""

    def test_utc_time_zone(self):
        from datetime import timezone

        assert config.get_timezone("UTC") is timezone.utc

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.setattr(config, "API_ID", None)

        with pytest.raises(ValueError):
            config.validate_credentials()

    def test_api_id_is_parsed(self, monkeypatch):
        monkeypatch.setattr(config, "API_ID", "12345")
        monkeypatch.setattr(config, "API_HASH", "hash")

        assert config.validate_credentials() == 12345
