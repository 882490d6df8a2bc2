from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import ExternalCollaboratorError
from app.schemas.settings import CaptureSettings
from app.services.capture import CaptureLoop
from app.services.clipboard_service import ClipboardService


def get_capture_settings(request: Request) -> CaptureSettings:
    """Runtime capture settings, falling back to the environment defaults."""
    return getattr(request.app.state, "capture_settings", None) or settings.capture_settings


def get_capture_loop(request: Request) -> CaptureLoop:
    loop = getattr(request.app.state, "capture_loop", None)
    if loop is None:
        raise ExternalCollaboratorError("Clipboard capture is not available")
    return loop


def get_clipboard_service(
    db: Session = Depends(get_db),
    capture_settings: CaptureSettings = Depends(get_capture_settings),
) -> ClipboardService:
    return ClipboardService(db, capture_settings)
