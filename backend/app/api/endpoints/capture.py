from fastapi import APIRouter, Depends, Request
import logging

from app.api.dependencies import get_capture_loop, get_capture_settings
from app.core.logging_config import log_event
from app.schemas.settings import CaptureSettings, CaptureSettingsUpdate, CaptureStatus
from app.services.capture import CaptureLoop

logger = logging.getLogger(__name__)
router = APIRouter()


def _status(loop: CaptureLoop) -> CaptureStatus:
    return CaptureStatus(
        is_running=loop.is_running, interval_ms=loop.interval_ms, settings=loop.settings
    )


@router.get("/status", response_model=CaptureStatus)
def get_capture_status(loop: CaptureLoop = Depends(get_capture_loop)):
    return _status(loop)


@router.post("/start", response_model=CaptureStatus)
def start_capture(loop: CaptureLoop = Depends(get_capture_loop)):
    """Start polling the clipboard. Starting a running loop is a no-op."""
    if loop.start():
        log_event("capture.started", "Clipboard capture started", event_category="system")
    return _status(loop)


@router.post("/stop", response_model=CaptureStatus)
def stop_capture(loop: CaptureLoop = Depends(get_capture_loop)):
    if loop.stop():
        log_event("capture.stopped", "Clipboard capture stopped", event_category="system")
    return _status(loop)


@router.get("/settings", response_model=CaptureSettings)
def get_settings(capture_settings: CaptureSettings = Depends(get_capture_settings)):
    return capture_settings


@router.put("/settings", response_model=CaptureSettings)
def update_settings(
    request: Request,
    update: CaptureSettingsUpdate,
    current: CaptureSettings = Depends(get_capture_settings),
):
    """
    Replace capture settings for the running process.

    Changes are not persisted; a restart goes back to the environment values.
    """
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    new_settings = CaptureSettings(**{**current.model_dump(), **changes})
    request.app.state.capture_settings = new_settings

    loop = getattr(request.app.state, "capture_loop", None)
    if loop is not None:
        loop.update_settings(new_settings)

    logger.info(f"Capture settings updated: {', '.join(sorted(changes)) or 'nothing'}")
    return new_settings
