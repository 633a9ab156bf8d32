"""
Tracker API Routes for mangatrack

This module provides RESTful API endpoints for tracker services: listing
them, logging in through OAuth, searching remote titles and keeping local
tracks in sync with the user's remote library.

API Endpoints:
    GET    /api/trackers                       - List tracker services
    GET    /api/trackers/{id}/auth-url         - OAuth authorization URL
    POST   /api/trackers/{id}/login            - Log in (code or username/password)
    POST   /api/trackers/{id}/logout           - Forget stored credentials
    GET    /api/trackers/{id}/search           - Search remote titles
    POST   /api/trackers/{id}/tracks           - Bind a manga to a remote title
    PUT    /api/tracks/{track_id}              - Update personal fields and push them
    POST   /api/tracks/{track_id}/refresh      - Pull personal fields from the tracker
    GET    /auth/shikimori                     - Shikimori OAuth redirect callback

Error Mapping:
    NotAuthenticatedError / AuthenticationError -> 401
    RemoteNetworkError                          -> 503
    RemoteServiceError                          -> 502
    Unknown service or track                    -> 404
    Concurrent bind of the same manga           -> 409
"""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.track import Track
from ..adapters.tracker_adapter import TrackService
from ..adapters.tracker_factory import TrackerFactory, get_tracker_factory
from ..schemas import (
    SuccessResponse,
    TrackerInfoResponse,
    AuthUrlResponse,
    TrackResponse,
    TrackerLoginRequest,
    TrackBindRequest,
    TrackUpdateRequest,
    TrackSearch,
)
from ..services.exceptions import (
    RemoteServiceError,
    AuthenticationError,
    NotAuthenticatedError,
    is_transient_error,
)
from ..services.structured_logging import set_tracker_id

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Helper Functions
# ============================================================================

def get_factory() -> TrackerFactory:
    """FastAPI dependency returning the process-wide tracker factory."""
    return get_tracker_factory()


def _get_service(factory: TrackerFactory, service_id: int) -> TrackService:
    try:
        service = factory.get_service(service_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Tracker service not found")
    set_tracker_id(service_id)
    return service


def _get_track(db: Session, track_id: int) -> Track:
    track = Track.get_by_id(db, track_id)
    if not track:
        raise HTTPException(status_code=404, detail="Track not found")
    return track


def _remote_error(service: TrackService, error: RemoteServiceError) -> HTTPException:
    """
    Translate a tracker failure into an HTTP error response.

    Args:
        service: Service that raised the error
        error: The raised exception

    Returns:
        HTTPException to raise
    """
    if isinstance(error, (NotAuthenticatedError, AuthenticationError)):
        logger.warning(f"{service.name} authentication required: {error}")
        return HTTPException(status_code=401, detail=f"Not logged in to {service.name}")

    if is_transient_error(error):
        logger.warning(f"{service.name} unreachable: {error}")
        return HTTPException(status_code=503, detail=f"{service.name} is unavailable: {error.message}")

    logger.error(f"{service.name} request failed: {error}")
    return HTTPException(status_code=502, detail=f"{service.name} error: {error.message}")


def _track_response(service: TrackService, track: Track) -> TrackResponse:
    return TrackResponse(
        **track.to_dict(),
        display_score=service.display_score(track),
        status_label=service.get_status(track.status),
    )


# ============================================================================
# Tracker Services
# ============================================================================

@router.get("/api/trackers", response_model=List[TrackerInfoResponse], tags=["trackers"])
async def list_trackers(factory: TrackerFactory = Depends(get_factory)):
    """
    List tracker services with their login state, statuses and scores.

    Returns:
        List of tracker service descriptions
    """
    logger.info("Listing tracker services")
    return [TrackerInfoResponse(**service.get_service_info()) for service in factory.get_all_services()]


@router.get("/api/trackers/{service_id}/auth-url", response_model=AuthUrlResponse, tags=["trackers"])
async def get_auth_url(service_id: int, factory: TrackerFactory = Depends(get_factory)):
    """
    Get the OAuth authorization URL the user must open to log in.

    Raises:
        HTTPException: If the service does not use OAuth
    """
    service = _get_service(factory, service_id)

    if not hasattr(service, 'get_auth_url'):
        raise HTTPException(status_code=400, detail=f"{service.name} does not use OAuth")

    return AuthUrlResponse(service_id=service_id, url=service.get_auth_url())


@router.post("/api/trackers/{service_id}/login", response_model=SuccessResponse, tags=["trackers"])
async def login(
    service_id: int,
    credentials: TrackerLoginRequest,
    factory: TrackerFactory = Depends(get_factory)
):
    """
    Log in to a tracker service.

    OAuth services receive the authorization code in place of the password.

    Args:
        service_id: Tracker service id
        credentials: Authorization code, or username and password
    """
    service = _get_service(factory, service_id)
    logger.info(f"Logging in to {service.name}")

    username = credentials.username or ""
    password = credentials.code or credentials.password or ""

    try:
        await service.login(username, password)
    except RemoteServiceError as e:
        raise _remote_error(service, e) from e

    return SuccessResponse(message=f"Logged in to {service.name}")


@router.get("/auth/shikimori", response_model=SuccessResponse, tags=["trackers"])
async def shikimori_callback(
    code: str = Query(..., min_length=1, description="OAuth authorization code"),
    factory: TrackerFactory = Depends(get_factory)
):
    """
    OAuth redirect target for Shikimori.

    Shikimori redirects the browser here with ?code=... after the user
    authorizes the application.
    """
    service = _get_service(factory, TrackerFactory.SHIKIMORI)
    logger.info("Received Shikimori OAuth callback")

    try:
        await service.login_with_code(code)
    except RemoteServiceError as e:
        raise _remote_error(service, e) from e

    return SuccessResponse(message=f"Logged in to {service.name}")


@router.post("/api/trackers/{service_id}/logout", response_model=SuccessResponse, tags=["trackers"])
async def logout(service_id: int, factory: TrackerFactory = Depends(get_factory)):
    """Forget the stored credentials of a tracker service."""
    service = _get_service(factory, service_id)
    service.logout()
    return SuccessResponse(message=f"Logged out of {service.name}")


@router.get("/api/trackers/{service_id}/search", response_model=List[TrackSearch], tags=["trackers"])
async def search(
    service_id: int,
    query: str = Query(..., min_length=1, description="Title to search for"),
    factory: TrackerFactory = Depends(get_factory)
):
    """
    Search remote titles on a tracker service.

    Returns:
        Matching titles (possibly empty)
    """
    service = _get_service(factory, service_id)

    try:
        return await service.search(query)
    except RemoteServiceError as e:
        raise _remote_error(service, e) from e


# ============================================================================
# Tracks
# ============================================================================

@router.post("/api/trackers/{service_id}/tracks", response_model=TrackResponse, tags=["tracks"])
async def bind_track(
    service_id: int,
    request: TrackBindRequest,
    factory: TrackerFactory = Depends(get_factory),
    db: Session = Depends(get_db)
):
    """
    Bind a local manga to a remote title.

    Reuses the existing track for the manga and service if there is one.
    The track is stored only after the tracker accepted it.
    """
    service = _get_service(factory, service_id)
    logger.info(f"Binding manga {request.manga_id} to {service.name} title {request.media_id}")

    track = Track.get_for_manga_and_service(db, request.manga_id, service_id)
    if track is None:
        track = Track(manga_id=request.manga_id, sync_id=service_id)

    track.media_id = request.media_id
    track.title = request.title
    track.total_chapters = request.total_chapters
    track.tracking_url = request.tracking_url
    track.last_chapter_read = request.last_chapter_read

    try:
        await service.bind(track)
    except RemoteServiceError as e:
        db.rollback()
        raise _remote_error(service, e) from e

    db.add(track)
    try:
        db.commit()
    except IntegrityError:
        # Another request bound the same manga to this service first
        db.rollback()
        logger.warning(f"Manga {request.manga_id} is already bound to {service.name}")
        raise HTTPException(
            status_code=409,
            detail=f"Manga {request.manga_id} is already bound to {service.name}"
        )
    db.refresh(track)

    logger.info(f"Bound track {track.id} (library_id={track.library_id})")
    return _track_response(service, track)


@router.put("/api/tracks/{track_id}", response_model=TrackResponse, tags=["tracks"])
async def update_track(
    track_id: int,
    changes: TrackUpdateRequest,
    factory: TrackerFactory = Depends(get_factory),
    db: Session = Depends(get_db)
):
    """
    Apply personal-field changes to a track and push them to the tracker.

    Local changes are discarded if the tracker rejects the update.

    Raises:
        HTTPException: If the track does not exist or the status is invalid
    """
    track = _get_track(db, track_id)
    service = _get_service(factory, track.sync_id)

    update_data = changes.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    if 'status' in update_data and update_data['status'] not in service.get_status_list():
        raise HTTPException(status_code=400, detail=f"Invalid status for {service.name}: {update_data['status']}")

    for field, value in update_data.items():
        setattr(track, field, value)

    try:
        await service.update(track)
    except RemoteServiceError as e:
        db.rollback()
        raise _remote_error(service, e) from e

    db.commit()
    db.refresh(track)
    return _track_response(service, track)


@router.post("/api/tracks/{track_id}/refresh", response_model=TrackResponse, tags=["tracks"])
async def refresh_track(
    track_id: int,
    factory: TrackerFactory = Depends(get_factory),
    db: Session = Depends(get_db)
):
    """Overlay the remote personal fields and chapter count onto a track."""
    track = _get_track(db, track_id)
    service = _get_service(factory, track.sync_id)

    try:
        await service.refresh(track)
    except RemoteServiceError as e:
        db.rollback()
        raise _remote_error(service, e) from e

    db.commit()
    db.refresh(track)
    return _track_response(service, track)
