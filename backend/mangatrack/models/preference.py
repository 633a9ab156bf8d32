"""
Preference Database Model for mangatrack

Key/value rows backing the process-wide preference store. Each tracker
service owns a handful of keys (username, password, serialized OAuth token)
namespaced by its service id; see services/preferences.py for the key layout.

Only one row exists per key. Writes overwrite the previous value (last writer
wins) and deletes remove the row entirely.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import Session
from typing import Optional

from .base import Base


class TrackerPreference(Base):
    """
    Database model for a single stored preference value.

    Table Structure:
        - id: Primary key
        - key: Unique preference key (e.g., "track_token_4")
        - value: Opaque string value (may hold serialized JSON)
        - created_at / updated_at: Timestamps

    Security Note:
        Tracker passwords and tokens are stored as plain text, the same way
        the rest of the tracker settings are stored.
    """

    __tablename__ = 'preferences'

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __init__(self, **kwargs):
        """Initialize preference entry."""
        super().__init__(**kwargs)

    @classmethod
    def get_by_key(cls, db: Session, key: str) -> Optional['TrackerPreference']:
        """
        Get preference row by key.

        Args:
            db: SQLAlchemy database session
            key: Preference key

        Returns:
            TrackerPreference if found, None otherwise
        """
        return db.query(cls).filter(cls.key == key).first()

    @classmethod
    def get_value(cls, db: Session, key: str) -> Optional[str]:
        """Get the stored value for a key, or None if the key is not set."""
        preference = cls.get_by_key(db, key)
        return preference.value if preference else None

    @classmethod
    def set_value(cls, db: Session, key: str, value: str) -> 'TrackerPreference':
        """
        Create or overwrite the value stored under a key.

        Args:
            db: SQLAlchemy database session
            key: Preference key
            value: New value

        Returns:
            The stored TrackerPreference instance
        """
        preference = cls.get_by_key(db, key)

        if preference is None:
            preference = cls(key=key, value=value)
            db.add(preference)
        else:
            preference.value = value
            preference.updated_at = datetime.utcnow()

        db.commit()
        db.refresh(preference)
        return preference

    @classmethod
    def delete_key(cls, db: Session, key: str) -> bool:
        """
        Delete the row stored under a key.

        Returns:
            True if a row was deleted, False if the key was not set
        """
        preference = cls.get_by_key(db, key)
        if not preference:
            return False

        db.delete(preference)
        db.commit()
        return True

    def __repr__(self) -> str:
        """String representation of preference (value omitted)."""
        return f"<TrackerPreference(id={self.id}, key='{self.key}')>"
