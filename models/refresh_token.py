"""
RefreshToken model: opaque, persisted, single-use refresh tokens.
Fields:
- token (unique opaque value, 256 random bits as hex)
- user_id (String(36)) - FK to users.id
- created_at, expires_at

A user may hold several live tokens (one per device). Using a token deletes
it and issues a replacement (rotation); a deleted value never authenticates again.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

import models
from models.base_model import BaseModel, Base
from utils import security
from utils.exceptions import NotFound

logger = logging.getLogger(__name__)


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    @classmethod
    def issue(cls, user_id: str, lifetime: timedelta) -> "RefreshToken":
        """Create and persist a fresh refresh token for `user_id`."""
        rt = cls(
            token=security.generate_refresh_value(),
            user_id=str(user_id),
            expires_at=security.utc_now() + lifetime,
        )
        models.storage.new(rt)
        models.storage.save()
        return rt

    @classmethod
    def find_by_value(cls, raw: str | None) -> "RefreshToken | None":
        if not raw:
            return None
        session = models.storage.get_session()
        return session.query(cls).filter(cls.token == raw).first()

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or security.utc_now()) > self.expires_at

    @classmethod
    def revoke(cls, token_id: str) -> bool:
        """
        Delete a refresh token by id. Deleting a missing id is not an error;
        the return value says whether this call removed the row.
        """
        session = models.storage.get_session()
        deleted = session.query(cls).filter(cls.id == token_id).delete(synchronize_session="fetch")
        models.storage.save()
        return deleted > 0

    @classmethod
    def revoke_all_for(cls, user_id: str) -> int:
        session = models.storage.get_session()
        deleted = session.query(cls).filter(cls.user_id == str(user_id)).delete(synchronize_session="fetch")
        models.storage.save()
        return deleted

    @classmethod
    def rotate(cls, raw: str | None, lifetime: timedelta) -> "RefreshToken":
        """
        Consume `raw` and issue its replacement for the same owner.
        Raises NotFound when the token is unknown, expired, or was consumed by a
        concurrent request between lookup and delete.
        """
        current = cls.find_by_value(raw)
        if current is None:
            raise NotFound("Refresh token is not in database!")

        token_id, owner_id = current.id, current.user_id
        if current.is_expired():
            cls.revoke(token_id)
            raise NotFound("Refresh token was expired. Please make a new signin request")

        if not cls.revoke(token_id):
            logger.warning("Refresh token %s consumed concurrently", token_id)
            raise NotFound("Refresh token is not in database!")
        return cls.issue(owner_id, lifetime)

    def __repr__(self):
        return f"<RefreshToken id={self.id} user={self.user_id}>"
