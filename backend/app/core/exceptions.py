"""
ClipDeck - Custom Exceptions and Exception Handlers
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ClipDeckError(Exception):
    """Base exception for ClipDeck"""

    status_code = 400

    def __init__(self, message: str, code: str = "CLIPDECK_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {"error": True, "code": self.code, "message": self.message}


class ValidationError(ClipDeckError):
    """Bad input (tag names, empty required fields). Never persisted."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")
        logger.warning(f"Validation error: {message}")


class NotFoundError(ClipDeckError):
    """Lookup by id or name matched nothing"""

    status_code = 404

    def __init__(self, message: str):
        super().__init__(message, code="NOT_FOUND")


class ConflictError(ClipDeckError):
    """Uniqueness violation"""

    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, code="CONFLICT")


class PersistenceError(ClipDeckError):
    """Storage engine failure"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, code="PERSISTENCE_ERROR")
        logger.error(f"Persistence error: {message}")


class ExternalCollaboratorError(ClipDeckError):
    """Clipboard or LLM failure. Callers treat it as "feature unavailable"."""

    status_code = 502

    def __init__(self, message: str):
        super().__init__(message, code="EXTERNAL_ERROR")


def register_exception_handlers(app: FastAPI):
    """Register exception handlers with the FastAPI app"""

    @app.exception_handler(ClipDeckError)
    async def handle_clipdeck_error(request: Request, exc: ClipDeckError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
