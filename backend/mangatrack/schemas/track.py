"""
Track Search Schema

TrackSearch is the transient projection of a remote tracker entry returned by
search and library lookups. It carries the same personal fields as the Track
model so a Track can copy them with Track.copy_personal_from().
"""

from typing import Optional
from pydantic import BaseModel, Field


class TrackSearch(BaseModel):
    """Remote title or library entry as reported by a tracker service."""
    sync_id: int = Field(..., description="Tracker service id")
    media_id: int = Field(0, description="Remote title id")
    library_id: Optional[int] = Field(None, description="Remote library entry id")
    title: str = Field("", description="Title on the tracker")

    last_chapter_read: float = 0.0
    total_chapters: int = 0
    score: float = 0.0
    status: int = 0
    started_reading_date: int = 0
    finished_reading_date: int = 0
    tracking_url: str = ""

    cover_url: str = ""
    summary: str = ""
    publishing_status: str = ""
    publishing_type: str = ""
    start_date: str = ""
