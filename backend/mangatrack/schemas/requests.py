"""
API Request Schemas

Pydantic models for API requests.
Used for OpenAPI documentation and request validation.
"""

from typing import Optional
from pydantic import BaseModel, Field, model_validator


# ============================================================================
# Tracker Authentication Requests
# ============================================================================

class TrackerLoginRequest(BaseModel):
    """
    Request model for logging in to a tracker service.

    OAuth trackers (Shikimori) take the authorization code; credential
    trackers take username and password.
    """
    code: Optional[str] = Field(
        None,
        description="OAuth authorization code returned by the tracker",
        min_length=1,
        examples=["Xk1v1X5wFq0b2C9vZ7lU"]
    )
    username: Optional[str] = Field(None, description="Account username")
    password: Optional[str] = Field(None, description="Account password")

    @model_validator(mode='after')
    def check_credentials(self) -> 'TrackerLoginRequest':
        if not self.code and not (self.username and self.password):
            raise ValueError("Either 'code' or both 'username' and 'password' are required")
        return self

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": "Xk1v1X5wFq0b2C9vZ7lU"
            }
        }
    }


# ============================================================================
# Track Requests
# ============================================================================

class TrackBindRequest(BaseModel):
    """Request model for binding a local manga to a remote title."""
    manga_id: int = Field(..., description="Local manga identifier", ge=1)
    media_id: int = Field(..., description="Remote title id on the tracker", ge=1)
    title: str = Field("", description="Title as shown by the tracker", max_length=500)
    total_chapters: int = Field(0, ge=0)
    tracking_url: str = Field("", max_length=1000)
    last_chapter_read: float = Field(0.0, ge=0)

    model_config = {
        "json_schema_extra": {
            "example": {
                "manga_id": 12,
                "media_id": 2,
                "title": "Berserk",
                "total_chapters": 0,
                "tracking_url": "https://shikimori.one/mangas/2-berserk",
                "last_chapter_read": 120
            }
        }
    }


class TrackUpdateRequest(BaseModel):
    """Request model for changing personal fields of a track."""
    last_chapter_read: Optional[float] = Field(None, ge=0)
    score: Optional[float] = Field(None, ge=0, le=10)
    status: Optional[int] = Field(None, ge=1)
    started_reading_date: Optional[int] = Field(None, ge=0)
    finished_reading_date: Optional[int] = Field(None, ge=0)
