from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from api.observability import set_user_id
from core.config import get_settings


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthPrincipal:
    """Who is calling. Roles are looked up on the user row, never read from here."""

    user_id: str
    email: Optional[str]
    name: Optional[str]
    exp: int


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(status_code=401, detail={"code": code, "message": message})


def create_access_token(
    user_id: str,
    *,
    email: Optional[str] = None,
    name: Optional[str] = None,
    expires_in_minutes: Optional[int] = None,
) -> str:
    settings = get_settings()
    minutes = settings.jwt_expire_minutes if expires_in_minutes is None else expires_in_minutes
    claims: dict[str, object] = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AuthPrincipal:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise _unauthorized("TOKEN_EXPIRED", "Token has expired") from exc
    except JWTError as exc:
        raise _unauthorized("INVALID_TOKEN", "Token could not be verified") from exc

    subject = payload.get("sub")
    # lesson confirmation links are signed with the same key but are not sessions
    if not subject or payload.get("purpose"):
        raise _unauthorized("INVALID_TOKEN", "Token could not be verified")
    return AuthPrincipal(
        user_id=str(subject),
        email=payload.get("email"),
        name=payload.get("name"),
        exp=int(payload.get("exp") or 0),
    )


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthPrincipal:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("AUTH_REQUIRED", "Authentication required")
    principal = decode_access_token(credentials.credentials)
    set_user_id(principal.user_id)
    return principal
