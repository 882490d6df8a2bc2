"""
Clipboard capture loop.

Polls the system clipboard on an APScheduler interval job, drops empty and
repeated values, filters likely passwords and hands everything else to a
content processor.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from typing import Callable, Optional, Protocol
import logging
import threading

from app.core.config import settings as app_settings
from app.core.exceptions import ExternalCollaboratorError
from app.core.logging_config import log_event
from app.schemas.settings import CaptureSettings
from app.services.classifier import is_likely_password
from app.services.clipboard_io import read_clipboard

logger = logging.getLogger(__name__)

CAPTURE_JOB_ID = "clipboard_capture"


class ContentProcessor(Protocol):
    def process_content(self, content: str) -> None: ...


class CaptureLoop:
    def __init__(
        self,
        capture_settings: CaptureSettings,
        reader: Callable[[], str] = read_clipboard,
        interval_ms: Optional[int] = None,
    ):
        self.settings = capture_settings
        self.reader = reader
        self.interval_ms = interval_ms or app_settings.CAPTURE_INTERVAL_MS
        self.processor: Optional[ContentProcessor] = None
        self.last_content: Optional[str] = None
        self.scheduler: Optional[BackgroundScheduler] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self.scheduler is not None

    def set_processor(self, processor: ContentProcessor) -> None:
        self.processor = processor

    def update_settings(self, capture_settings: CaptureSettings) -> None:
        """Swap settings and bring the polling state in line with auto_capture."""
        self.settings = capture_settings
        if capture_settings.auto_capture and not self.is_running:
            self.start()
        elif not capture_settings.auto_capture and self.is_running:
            self.stop()

    def start(self) -> bool:
        """Begin polling. Returns False when already running or no processor is set."""
        with self._lock:
            if self.scheduler is not None:
                return False
            if self.processor is None:
                logger.warning("Capture loop has no content processor, not starting")
                return False

            scheduler = BackgroundScheduler()
            scheduler.add_job(
                self.tick,
                trigger=IntervalTrigger(seconds=self.interval_ms / 1000),
                id=CAPTURE_JOB_ID,
                name="Poll clipboard",
                max_instances=1,
                coalesce=True,
                misfire_grace_time=None,
                replace_existing=True,
            )
            scheduler.start()
            self.scheduler = scheduler

        logger.info(f"Capture loop started with interval: {self.interval_ms} ms")
        return True

    def stop(self) -> bool:
        """Stop polling and wait for an in-flight tick to finish."""
        with self._lock:
            if self.scheduler is None:
                return False
            self.scheduler.shutdown(wait=True)
            self.scheduler = None

        logger.info("Capture loop stopped")
        return True

    def tick(self) -> None:
        try:
            content = self.reader()
        except ExternalCollaboratorError as e:
            logger.debug(f"Skipping capture tick: {e.message}")
            return

        if not content or content == self.last_content:
            return

        self.last_content = content
        self.accept(content)

    def accept(self, content: str) -> bool:
        """Filter and forward one new clipboard value. Returns True if forwarded."""
        if self.settings.ignore_passwords and is_likely_password(content):
            log_event("capture.skipped", "Skipped likely password", reason="password")
            return False

        if self.processor is None:
            return False

        try:
            self.processor.process_content(content)
        except Exception as e:
            logger.error(f"Error processing clipboard content: {str(e)}")
            return False
        return True
