from __future__ import annotations

import pytest
from fastapi import HTTPException
from jose import jwt

from api.auth import create_access_token, decode_access_token
from core.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "unit-test-secret")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_token_round_trip_carries_identity():
    token = create_access_token("user-1", email="a@example.com", name="Ada")
    principal = decode_access_token(token)
    assert principal.user_id == "user-1"
    assert principal.email == "a@example.com"
    assert principal.name == "Ada"


def test_expired_token_is_rejected_with_code():
    token = create_access_token("user-1", expires_in_minutes=-5)
    with pytest.raises(HTTPException) as exc:
        decode_access_token(token)
    assert exc.value.status_code == 401
    assert exc.value.detail["code"] == "TOKEN_EXPIRED"


def test_tampered_token_is_invalid():
    head, sig = create_access_token("user-1").rsplit(".", 1)
    swapped = "A" if sig[5] != "A" else "B"
    with pytest.raises(HTTPException) as exc:
        decode_access_token(f"{head}.{sig[:5]}{swapped}{sig[6:]}")
    assert exc.value.detail["code"] == "INVALID_TOKEN"


def test_purpose_tokens_cannot_be_used_as_sessions():
    s = get_settings()
    token = jwt.encode({"sub": "7", "purpose": "lesson_confirm", "exp": 4102444800}, s.jwt_secret, algorithm=s.jwt_algorithm)
    with pytest.raises(HTTPException) as exc:
        decode_access_token(token)
    assert exc.value.detail["code"] == "INVALID_TOKEN"


def test_token_signed_with_other_secret_is_invalid():
    token = jwt.encode({"sub": "user-1", "exp": 4102444800}, "someone-else", algorithm="HS256")
    with pytest.raises(HTTPException):
        decode_access_token(token)
