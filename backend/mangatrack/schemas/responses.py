"""
API Response Schemas

Pydantic models for standardized API responses.
Used for OpenAPI documentation and response validation.
"""

from typing import Optional, List
from pydantic import BaseModel, Field


# ============================================================================
# Base Response Models
# ============================================================================

class SuccessResponse(BaseModel):
    """Standard success response."""
    success: bool = Field(True, description="Operation success status")
    message: str = Field(..., description="Success message")

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": True,
                "message": "Operation completed successfully"
            }
        }
    }


# ============================================================================
# Tracker Responses
# ============================================================================

class TrackerStatusResponse(BaseModel):
    """A status code with its display label."""
    code: int
    label: str


class TrackerInfoResponse(BaseModel):
    """Tracker service description for clients."""
    id: int = Field(..., description="Tracker service id")
    name: str = Field(..., description="Tracker name")
    slug: str = Field(..., description="URL-safe identifier")
    logo: str = Field(..., description="Logo resource name")
    logo_color: str = Field(..., description="Logo background color (hex)")
    logged_in: bool = Field(..., description="Whether credentials are stored")
    statuses: List[TrackerStatusResponse] = Field(default_factory=list)
    completion_status: int
    scores: List[str] = Field(default_factory=list)
    supports_reading_dates: bool = False

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": 4,
                "name": "Shikimori",
                "slug": "shikimori",
                "logo": "ic_tracker_shikimori",
                "logo_color": "#282828",
                "logged_in": True,
                "statuses": [{"code": 1, "label": "Reading"}],
                "completion_status": 2,
                "scores": ["0", "1", "2"],
                "supports_reading_dates": False
            }
        }
    }


class AuthUrlResponse(BaseModel):
    """OAuth authorization URL for a tracker."""
    service_id: int
    url: str


# ============================================================================
# Track Responses
# ============================================================================

class TrackResponse(BaseModel):
    """Response model for a track bound to a tracker service."""
    id: Optional[int] = Field(None, description="Local track id")
    manga_id: int
    sync_id: int
    media_id: int
    library_id: Optional[int] = None
    title: str = ""
    last_chapter_read: float = 0.0
    total_chapters: int = 0
    score: float = 0.0
    display_score: str = Field("", description="Score formatted by the tracker")
    status: int = 0
    status_label: str = Field("", description="Status label from the tracker")
    started_reading_date: int = 0
    finished_reading_date: int = 0
    tracking_url: str = ""

    model_config = {"from_attributes": True}
