"""System clipboard access via pyperclip."""

import logging
import pyperclip

from app.core.exceptions import ExternalCollaboratorError

logger = logging.getLogger(__name__)


def read_clipboard() -> str:
    """Return the current clipboard text ("" when it holds no text)."""
    try:
        raw = pyperclip.paste()
    except pyperclip.PyperclipException as e:
        raise ExternalCollaboratorError(f"Could not read clipboard: {str(e)}")

    if not isinstance(raw, str):
        return ""
    return raw


def write_clipboard(text: str) -> None:
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ExternalCollaboratorError(f"Could not write clipboard: {str(e)}")
    logger.debug(f"Wrote {len(text)} characters to clipboard")
