#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the Natours auth API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps (naive UTC, see utils.security.utc_now)
- save() that uses the DBStorage singleton
- to_dict() that formats timestamps, removes SA internals and secrets
- SoftDeleteMixin adding deleted_at and soft_delete()
"""

from __future__ import annotations

from datetime import datetime
import uuid

# Importing 'models' gives access to the global 'storage' instance (DBStorage)
# defined in models/__init__.py
import models

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

from utils.security import utc_now

TIME_FMT = "%Y-%m-%dT%H:%M:%S.%f"

# Never exposed by to_dict()
SECRET_FIELDS = ("password_hash", "email_confirm_token", "password_reset_token")

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at,
    save() wired to DBStorage and to_dict() for debugging output.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if user passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        """Human-friendly representation including id and fields."""
        return f"[{self.__class__.__name__}] ({self.id}) {self.to_dict()}"

    def save(self):
        """Update updated_at and persist the instance using DBStorage."""
        self.updated_at = utc_now()
        models.storage.new(self)
        models.storage.save()

    def to_dict(self) -> dict:
        """
        Return a dictionary of fields:
        - Adds __class__
        - Formats datetimes to TIME_FMT
        - Removes SQLAlchemy internal state and secret columns
        """
        d = {
            k: v for k, v in self.__dict__.items()
            if k != "_sa_instance_state" and k not in SECRET_FIELDS
        }
        for key, value in d.items():
            if isinstance(value, datetime):
                d[key] = value.strftime(TIME_FMT)
        d["__class__"] = self.__class__.__name__
        return d


class SoftDeleteMixin:
    """
    Adds a deleted_at timestamp; soft-deleted rows stay in the table.
    """

    deleted_at = Column(DateTime, nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self):
        """Explicit soft delete helper; sets deleted_at and commits."""
        self.deleted_at = utc_now()
        models.storage.new(self)
        models.storage.save()

