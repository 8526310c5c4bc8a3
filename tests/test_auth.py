"""
Tests for session tokens and admin checks
"""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from cats_admin.auth import create_access_token, decode_access_token, get_admin, get_current_user, is_admin
from cats_admin.config import settings

ADMIN = "0xadmin000000000000000000000000000000000001"


@pytest.fixture(autouse=True)
def admin_addresses(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_ADDRESSES", f" {ADMIN.upper()} , 0xsecond ")


def make_request(cookies=None):
    headers = []
    if cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
        headers.append((b"cookie", cookie.encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


class TestTokens:

    def test_round_trip(self):
        token = create_access_token({"address": ADMIN})

        assert decode_access_token(token)["address"] == ADMIN

    def test_expired_token_rejected(self):
        token = create_access_token({"address": ADMIN}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(HTTPException) as exc:
            decode_access_token(token)
        assert exc.value.status_code == 401

    def test_garbage_rejected(self):
        with pytest.raises(HTTPException) as exc:
            decode_access_token("not-a-token")
        assert exc.value.status_code == 401


class TestAdminCheck:

    def test_admin_list_is_case_insensitive(self):
        assert settings.admin_addresses == [ADMIN.lower(), "0xsecond"]
        assert is_admin(ADMIN)
        assert is_admin(ADMIN.upper())
        assert not is_admin("0xsomeoneelse")
        assert not is_admin(None)

    @pytest.mark.asyncio
    async def test_current_user_from_cookie(self):
        request = make_request({"token": create_access_token({"address": ADMIN.upper()})})

        user = await get_current_user(request, None)

        assert user == {"address": ADMIN}

    @pytest.mark.asyncio
    async def test_missing_token(self):
        with pytest.raises(HTTPException) as exc:
            await get_current_user(make_request(), None)
        assert exc.value.status_code == 401

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self):
        with pytest.raises(HTTPException) as exc:
            await get_admin({"address": "0xsomeoneelse"})
        assert exc.value.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_allowed(self):
        assert await get_admin({"address": ADMIN}) == {"address": ADMIN}
