from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, Optional

import jwt
from fastapi import HTTPException, status

from app.config import get_settings
from app.core.dates import utcnow


@dataclass(frozen=True)
class Principal:
    """Who is calling.

    ``api_key`` principals are service credentials with no store binding.
    ``user`` principals come from a staff token and carry the store and role
    they were issued for.
    """

    kind: str
    user_id: Optional[int] = None
    store_id: Optional[int] = None
    role: Optional[str] = None
    claims: dict = field(default_factory=dict)

    @property
    def is_service(self) -> bool:
        return self.kind == "api_key"

    def can_act_for(self, store_id: int) -> bool:
        return self.is_service or self.store_id == store_id

    def has_role(self, roles: Iterable[str]) -> bool:
        return self.is_service or self.role in tuple(roles)


def _configured_api_keys() -> set[str]:
    settings = get_settings()
    raw = [settings.OWNER_API_KEY or ""]
    raw.extend((settings.API_KEYS or "").split(","))
    return {value.strip() for value in raw if value.strip()}


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def issue_token(*, user_id: int, store_id: int, role: str) -> str:
    """Sign a staff token for one store; it expires after ``JWT_EXPIRES_DAYS``."""
    settings = get_settings()
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set to issue tokens")
    now = utcnow()
    claims = {
        "sub": str(user_id),
        "store_id": store_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(days=settings.JWT_EXPIRES_DAYS),
    }
    if settings.JWT_AUDIENCE:
        claims["aud"] = settings.JWT_AUDIENCE
    if settings.JWT_ISSUER:
        claims["iss"] = settings.JWT_ISSUER
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Principal:
    settings = get_settings()
    if not settings.JWT_SECRET:
        raise _unauthorized("Token auth is not configured")
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"verify_aud": bool(settings.JWT_AUDIENCE), "require": ["exp"]},
        )
    except jwt.PyJWTError as exc:
        raise _unauthorized("Invalid token") from exc

    try:
        store_id = int(claims["store_id"])
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise _unauthorized("Token is missing its store or user") from exc
    return Principal(
        kind="user",
        user_id=user_id,
        store_id=store_id,
        role=claims.get("role"),
        claims=claims,
    )


def authenticate_request(
    api_key: Optional[str],
    authorization: Optional[str],
    *,
    require_auth: bool = False,
) -> Optional[Principal]:
    """Resolve the caller from an API key or a bearer token.

    Returns ``None`` for anonymous callers when nothing is configured, so a
    local install works without credentials. Once keys or a token secret
    exist, a protected route needs one of them.
    """
    settings = get_settings()
    keys = _configured_api_keys()

    if api_key and not settings.JWT_REQUIRED:
        if any(hmac.compare_digest(api_key, key) for key in keys):
            return Principal(kind="api_key")

    token = _bearer_token(authorization)
    if token and settings.JWT_SECRET:
        return decode_token(token)

    auth_configured = bool(keys or settings.JWT_SECRET)
    if settings.JWT_REQUIRED or (require_auth and auth_configured):
        raise _unauthorized("Not authenticated")
    return None


def hash_password(password: str, *, salt: str | None = None, rounds: int | None = None) -> str:
    """Return ``pbkdf2_sha256$rounds$salt$hexdigest`` for storage."""
    if rounds is None:
        rounds = get_settings().PASSWORD_PBKDF2_ROUNDS
    if salt is None:
        salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        rounds,
    ).hex()
    return f"pbkdf2_sha256${rounds}${salt}${digest}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, rounds, salt, _digest = stored.split("$", 3)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    computed = hash_password(password, salt=salt, rounds=int(rounds))
    return hmac.compare_digest(computed, stored)
