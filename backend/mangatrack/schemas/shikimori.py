"""
Shikimori API Schemas

Pydantic models for payloads exchanged with the Shikimori API.
"""

import time
from enum import IntEnum
from typing import Optional
from pydantic import BaseModel, Field


class ShikimoriStatus(IntEnum):
    """Library entry status codes used locally for Shikimori tracks."""
    READING = 1
    COMPLETED = 2
    ON_HOLD = 3
    DROPPED = 4
    PLANNING = 5
    REPEATING = 6


# Local status code <-> user_rate status string
REMOTE_STATUS = {
    ShikimoriStatus.READING: "watching",
    ShikimoriStatus.COMPLETED: "completed",
    ShikimoriStatus.ON_HOLD: "on_hold",
    ShikimoriStatus.DROPPED: "dropped",
    ShikimoriStatus.PLANNING: "planned",
    ShikimoriStatus.REPEATING: "rewatching",
}


class OAuth(BaseModel):
    """
    OAuth credential returned by the Shikimori token endpoint.

    Stored serialized as JSON in the preference store and restored on the
    first authenticated request.
    """
    access_token: str = Field(..., description="Bearer token")
    token_type: str = Field("Bearer", description="Token type")
    created_at: int = Field(..., description="Issue time (epoch seconds)")
    expires_in: int = Field(..., description="Lifetime in seconds")
    refresh_token: Optional[str] = Field(None, description="Refresh token")

    def is_expired(self) -> bool:
        """True once the token is within one hour of its expiry time."""
        return time.time() > (self.created_at + self.expires_in - 3600)

    def __repr__(self) -> str:
        return (
            f"OAuth(access_token='***{self.access_token[-4:]}', "
            f"created_at={self.created_at}, expires_in={self.expires_in})"
        )


class ShikimoriUser(BaseModel):
    """Subset of the /api/users/whoami response."""
    id: int
    nickname: Optional[str] = None
