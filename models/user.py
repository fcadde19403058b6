"""
User model.

Passwords are stored as argon2 hashes. The one-time tokens for e-mail
confirmation and password reset are stored only as SHA-256 digests next to
their expiry; the raw value leaves the server in a link and is forgotten.
"""
from __future__ import annotations

from datetime import timedelta
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

import models
from models.base_model import Base, BaseModel, SoftDeleteMixin
from utils import security
from utils.security import OneTimeToken, hash_password, to_epoch_us, verify_password


class Role(str, Enum):
    USER = "user"
    GUIDE = "guide"
    LEAD_GUIDE = "lead-guide"
    ADMIN = "admin"


class User(SoftDeleteMixin, BaseModel, Base):
    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        SAEnum(Role, name="user_role", native_enum=False, values_callable=lambda e: [r.value for r in e]),
        nullable=False,
        default=Role.USER,
    )
    phone_number = Column(String(32), nullable=True)
    email_confirmed = Column(Boolean, nullable=False, default=False)
    password_changed_at = Column(DateTime, nullable=True)

    email_confirm_token = Column(String(64), nullable=True, index=True)
    email_confirm_expires = Column(DateTime, nullable=True)
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @password.setter
    def password(self, raw: str):
        self.set_password(raw)

    def set_password(self, raw: str) -> None:
        """
        Hash and store a new password. For an existing account the change time
        is kept at full precision so any token signed before it is rejected.
        """
        is_change = self.password_hash is not None
        self.password_hash = hash_password(raw)
        if is_change:
            self.password_changed_at = security.utc_now()

    def correct_password(self, candidate: str) -> bool:
        return verify_password(candidate, self.password_hash)

    def changed_password_after(self, issued_at_us: int) -> bool:
        """True when the password changed after a token issued at `issued_at_us` (epoch microseconds)."""
        if self.password_changed_at is None:
            return False
        return to_epoch_us(self.password_changed_at) > issued_at_us

    def create_email_confirm_token(self, window: timedelta) -> str:
        token = OneTimeToken.generate(window)
        self.email_confirm_token = token.hashed
        self.email_confirm_expires = token.expires_at
        return token.raw

    def create_password_reset_token(self, window: timedelta) -> str:
        token = OneTimeToken.generate(window)
        self.password_reset_token = token.hashed
        self.password_reset_expires = token.expires_at
        return token.raw

    def clear_email_confirm(self) -> None:
        self.email_confirm_token = None
        self.email_confirm_expires = None

    def clear_password_reset(self) -> None:
        self.password_reset_token = None
        self.password_reset_expires = None

    @classmethod
    def find_by_email(cls, email: str | None) -> "User | None":
        if not email:
            return None
        session = models.storage.get_session()
        return (
            session.query(cls)
            .filter(cls.email == email.strip().lower(), cls.deleted_at.is_(None))
            .first()
        )

    @classmethod
    def find_live(cls, user_id: str) -> "User | None":
        user = models.storage.get(cls, user_id)
        if user is None or user.is_deleted:
            return None
        return user

    @classmethod
    def find_by_one_time_token(cls, column, hashed: str) -> "User | None":
        """Look up a live user by a stored one-time token digest; the caller checks expiry."""
        session = models.storage.get_session()
        return session.query(cls).filter(column == hashed, cls.deleted_at.is_(None)).first()

    def __repr__(self):
        return f"<User {self.email} role={self.role.value if self.role else None}>"
