"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access token signing/verification via PyJWT (TokenCodec)
- Opaque refresh token values
- Hashed, time-boxed one-time tokens for e-mail confirmation and password reset
"""
from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from utils.exceptions import InvalidOrExpired, InvalidToken

ph = PasswordHasher()

ACCESS_TOKEN_TYPE = "access"
TOKEN_BYTES = 32
EPOCH = datetime(1970, 1, 1)


def utc_now() -> datetime:
    """Naive UTC now; every stored timestamp uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_epoch(value: datetime) -> int:
    return int(value.replace(tzinfo=timezone.utc).timestamp())


def to_epoch_us(value: datetime) -> int:
    """Microseconds since the epoch, exact for naive UTC datetimes."""
    return (value - EPOCH) // timedelta(microseconds=1)


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext password using argon2
    """
    if not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


@dataclass(frozen=True)
class TokenSettings:
    """Token configuration frozen at application start."""

    secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)
    email_confirm_ttl: timedelta = timedelta(hours=24)
    password_reset_ttl: timedelta = timedelta(minutes=10)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TokenSettings":
        return cls(
            secret=config["JWT_SECRET"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            access_ttl=config["JWT_TOKEN_EXPIRES"],
            refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
            email_confirm_ttl=config["EMAIL_CONFIRM_EXPIRES"],
            password_reset_ttl=config["PASSWORD_RESET_EXPIRES"],
        )


@dataclass(frozen=True)
class AccessClaims:
    subject_id: str
    issued_at: int
    expires_at: int
    issued_at_us: int


class TokenCodec:
    """Signs and verifies short-lived access tokens (JWT, HS256 by default)."""

    def __init__(self, settings: TokenSettings):
        self.settings = settings

    def issue_access_token(self, subject_id: str) -> str:
        now = utc_now()
        payload = {
            "sub": str(subject_id),
            "iat": to_epoch(now),
            "iat_us": to_epoch_us(now),
            "exp": to_epoch(now + self.settings.access_ttl),
            "type": ACCESS_TOKEN_TYPE,
        }
        return jwt.encode(payload, self.settings.secret, algorithm=self.settings.algorithm)

    def verify_access_token(self, token: str) -> AccessClaims:
        """
        Decode and validate an access token.
        Raises InvalidToken on bad signature, malformed input, expiry or wrong type.
        """
        try:
            decoded = jwt.decode(
                token,
                self.settings.secret,
                algorithms=[self.settings.algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken("Token expired")
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(f"Invalid token: {exc}")

        if decoded.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidToken("Wrong token type")
        return AccessClaims(
            subject_id=decoded["sub"],
            issued_at=int(decoded["iat"]),
            expires_at=int(decoded["exp"]),
            issued_at_us=int(decoded.get("iat_us", int(decoded["iat"]) * 1_000_000)),
        )


def generate_refresh_value() -> str:
    """256 random bits, hex encoded."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class OneTimeToken:
    """A raw link token together with what gets stored for it."""

    raw: str
    hashed: str
    expires_at: datetime

    @classmethod
    def generate(cls, window: timedelta) -> "OneTimeToken":
        raw = secrets.token_hex(TOKEN_BYTES)
        return cls(raw=raw, hashed=hash_token(raw), expires_at=utc_now() + window)


def verify_one_time_token(raw: str | None, stored_hash: str | None, stored_expiry: datetime | None) -> None:
    """
    Check a raw one-time token against its stored digest and expiry.
    The caller clears the stored fields on success so the token cannot be replayed.
    """
    if not raw or not stored_hash or stored_expiry is None:
        raise InvalidOrExpired()
    if not hmac.compare_digest(hash_token(raw), stored_hash):
        raise InvalidOrExpired()
    if utc_now() > stored_expiry:
        raise InvalidOrExpired()
