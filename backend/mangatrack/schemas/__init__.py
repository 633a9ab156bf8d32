"""
API Schemas Package

Contains Pydantic models for API requests, API responses and tracker
payloads.
"""

from .responses import (
    SuccessResponse,
    TrackerStatusResponse,
    TrackerInfoResponse,
    AuthUrlResponse,
    TrackResponse,
)

from .requests import (
    TrackerLoginRequest,
    TrackBindRequest,
    TrackUpdateRequest,
)

from .shikimori import OAuth, ShikimoriStatus, ShikimoriUser
from .track import TrackSearch

__all__ = [
    # Responses
    'SuccessResponse',
    'TrackerStatusResponse',
    'TrackerInfoResponse',
    'AuthUrlResponse',
    'TrackResponse',
    # Requests
    'TrackerLoginRequest',
    'TrackBindRequest',
    'TrackUpdateRequest',
    # Tracker payloads
    'OAuth',
    'ShikimoriStatus',
    'ShikimoriUser',
    'TrackSearch',
]
