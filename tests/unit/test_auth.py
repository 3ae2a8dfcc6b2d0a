"""Unit tests for API authentication dependencies"""
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from daybook.api.auth import get_api_keys, get_user_id, require_admin, verify_api_key
from daybook.exceptions import ValidationError


def _credentials(key):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=key)


class TestGetApiKeys:

    def test_parses_comma_separated_keys(self, monkeypatch):
        monkeypatch.setenv("API_KEYS", " key-one , key-two,, ")

        assert get_api_keys() == ["key-one", "key-two"]

    def test_no_keys_configured(self, monkeypatch):
        monkeypatch.delenv("API_KEYS", raising=False)

        assert get_api_keys() == []


class TestVerifyApiKey:

    async def test_valid_key(self, monkeypatch):
        monkeypatch.setenv("API_KEYS", "secret-key")

        assert await verify_api_key(_credentials("secret-key")) == "secret-key"

    async def test_invalid_key_is_401(self, monkeypatch):
        monkeypatch.setenv("API_KEYS", "secret-key")

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(_credentials("guess"))
        assert exc_info.value.status_code == 401

    async def test_unconfigured_is_503(self, monkeypatch):
        monkeypatch.delenv("API_KEYS", raising=False)

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(_credentials("anything"))
        assert exc_info.value.status_code == 503


class TestUserIdentity:

    async def test_user_id_from_header(self):
        assert await get_user_id(" user-123 ") == "user-123"

    @pytest.mark.parametrize("header", [None, "", "   "])
    async def test_missing_user_id(self, header):
        with pytest.raises(ValidationError) as exc_info:
            await get_user_id(header)
        assert exc_info.value.field == "X-User-Id"

    @pytest.mark.parametrize("header", ["true", "TRUE", "True"])
    async def test_admin_allowed(self, header):
        assert await require_admin(header) is None

    @pytest.mark.parametrize("header", [None, "false", "yes"])
    async def test_non_admin_is_403(self, header):
        with pytest.raises(HTTPException) as exc_info:
            await require_admin(header)
        assert exc_info.value.status_code == 403
