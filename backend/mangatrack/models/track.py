"""
Track Database Model for mangatrack

A Track is a local library entry bound to one tracker service: the manga it
belongs to, the remote title id (media_id), the remote library entry id
(library_id) and the user's personal fields (score, status, progress, reading
dates).

Tracker services read and mutate Track fields in place during add, update,
bind and refresh. The lifecycle of the row (create/delete) belongs to the
application, not to the services.

Personal fields:
    - last_chapter_read
    - score
    - status
    - started_reading_date
    - finished_reading_date
"""

from datetime import datetime
from sqlalchemy import Column, Integer, BigInteger, String, Float, DateTime, UniqueConstraint
from sqlalchemy.orm import Session
from typing import Optional, List, Any

from .base import Base


# Values a freshly constructed Track carries before it is flushed
TRACK_DEFAULTS = {
    'library_id': None,
    'last_chapter_read': 0.0,
    'total_chapters': 0,
    'score': 0.0,
    'status': 0,
    'started_reading_date': 0,
    'finished_reading_date': 0,
    'tracking_url': '',
}


class Track(Base):
    """
    Database model for a manga bound to a tracker service.

    Table Structure:
        Identity:
            - id: Primary key
            - manga_id: Local manga identifier
            - sync_id: Tracker service id (e.g., 4 for Shikimori)
            - media_id: Remote title id on the tracker
            - library_id: Remote library entry id (set by add/bind)

        Metadata:
            - title: Title as known by the tracker
            - total_chapters: Chapter count reported by the tracker
            - tracking_url: Public URL of the title on the tracker

        Personal fields:
            - last_chapter_read, score, status
            - started_reading_date, finished_reading_date (epoch ms, 0 = unset)
    """

    __tablename__ = 'manga_sync'
    __table_args__ = (
        UniqueConstraint('manga_id', 'sync_id', name='uq_manga_sync_manga_service'),
    )

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Identity
    manga_id = Column(Integer, nullable=False, index=True)
    sync_id = Column(Integer, nullable=False)
    media_id = Column(Integer, nullable=False)
    library_id = Column(BigInteger, nullable=True)

    # Metadata
    title = Column(String(500), nullable=False, default='')
    total_chapters = Column(Integer, nullable=False, default=0)
    tracking_url = Column(String(1000), nullable=False, default='')

    # Personal fields
    last_chapter_read = Column(Float, nullable=False, default=0.0)
    score = Column(Float, nullable=False, default=0.0)
    status = Column(Integer, nullable=False, default=0)
    started_reading_date = Column(BigInteger, nullable=False, default=0)
    finished_reading_date = Column(BigInteger, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __init__(self, **kwargs):
        """
        Initialize Track entry.

        Column defaults only apply on flush, so personal fields are filled in
        here to keep transient instances usable by tracker services.
        """
        for key, value in TRACK_DEFAULTS.items():
            kwargs.setdefault(key, value)
        kwargs.setdefault('title', '')
        super().__init__(**kwargs)

    def copy_personal_from(self, other: Any) -> None:
        """
        Copy the user's personal fields from another track-like object.

        Args:
            other: Track or TrackSearch holding the source values
        """
        self.last_chapter_read = other.last_chapter_read
        self.score = other.score
        self.status = other.status
        self.started_reading_date = other.started_reading_date
        self.finished_reading_date = other.finished_reading_date

    def to_dict(self) -> dict:
        """
        Convert track to dictionary.

        Returns:
            Dictionary representation of track
        """
        return {
            'id': self.id,
            'manga_id': self.manga_id,
            'sync_id': self.sync_id,
            'media_id': self.media_id,
            'library_id': self.library_id,
            'title': self.title,
            'last_chapter_read': self.last_chapter_read,
            'total_chapters': self.total_chapters,
            'score': self.score,
            'status': self.status,
            'started_reading_date': self.started_reading_date,
            'finished_reading_date': self.finished_reading_date,
            'tracking_url': self.tracking_url,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def get_by_id(cls, db: Session, track_id: int) -> Optional['Track']:
        """
        Get track by ID.

        Args:
            db: SQLAlchemy database session
            track_id: Track ID

        Returns:
            Track if found, None otherwise
        """
        return db.query(cls).filter(cls.id == track_id).first()

    @classmethod
    def get_for_manga(cls, db: Session, manga_id: int) -> List['Track']:
        """Get every track bound to a manga, ordered by service id."""
        return db.query(cls).filter(cls.manga_id == manga_id).order_by(cls.sync_id).all()

    @classmethod
    def get_for_manga_and_service(cls, db: Session, manga_id: int, sync_id: int) -> Optional['Track']:
        """Get the track binding a manga to a specific tracker service."""
        return db.query(cls).filter(
            cls.manga_id == manga_id,
            cls.sync_id == sync_id
        ).first()

    @classmethod
    def create(cls, db: Session, **kwargs) -> 'Track':
        """
        Create a new track.

        Args:
            db: SQLAlchemy database session
            **kwargs: Track attributes

        Returns:
            Created Track instance
        """
        track = cls(**kwargs)
        db.add(track)
        db.commit()
        db.refresh(track)
        return track

    @classmethod
    def delete(cls, db: Session, track_id: int) -> bool:
        """
        Delete a track.

        Returns:
            True if deleted, False if not found
        """
        track = cls.get_by_id(db, track_id)
        if not track:
            return False

        db.delete(track)
        db.commit()
        return True

    def __repr__(self) -> str:
        """String representation of track."""
        return (
            f"<Track(id={self.id}, manga_id={self.manga_id}, sync_id={self.sync_id}, "
            f"media_id={self.media_id}, library_id={self.library_id}, status={self.status})>"
        )
