"""
Heuristic content classifier for captured clipboard text.

Pure functions only: a deterministic, ordered rule cascade decides the
category, a title is derived from the first characters, and a separate
password heuristic lets the capture loop skip likely secrets.
"""

import re
import string
from dataclasses import dataclass
from enum import Enum

from app.models.item import Item, new_id
from app.core.database import now_utc
from app.schemas.settings import CaptureSettings

TITLE_MAX_LENGTH = 50
ELLIPSIS = "..."

# Longer content skips the cascade and is plain text
CLASSIFY_MAX_LENGTH = 50

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 50

PHONE_MIN_DIGITS = 10
PHONE_CHARS = set(string.digits + "+-() .")
NUMBER_CHARS = set(string.digits + ".-+,")

FILE_EXTENSIONS = frozenset(
    {
        # documents
        "txt", "md", "doc", "docx", "pdf", "xls", "xlsx", "ppt", "pptx", "csv",
        # images
        "jpg", "jpeg", "png", "gif", "bmp", "svg", "webp",
        # audio / video
        "mp4", "mp3", "avi", "mov", "wav", "flac",
        # archives
        "zip", "rar", "7z", "tar", "gz",
        # web / data
        "html", "css", "js", "json", "xml", "yaml", "yml",
        # source
        "go", "py", "java", "cpp", "c", "h", "rs", "swift", "ts",
        # executables / packages
        "exe", "app", "dmg", "deb", "rpm",
    }
)

_NEWLINES = re.compile(r"[\r\n]+")


class Category(str, Enum):
    TEXT = "text"
    URL = "url"
    EMAIL = "email"
    PHONE = "phone"
    FILE = "file"
    PATH = "path"
    JSON = "json"
    NUMBER = "number"


class ContentType(str, Enum):
    TEXT = "text"
    URL = "url"
    EMAIL = "email"
    PHONE = "phone"
    FILE = "file"
    CODE = "code"
    JSON = "json"


CONTENT_TYPE_BY_CATEGORY = {
    Category.TEXT: ContentType.TEXT,
    Category.URL: ContentType.URL,
    Category.EMAIL: ContentType.EMAIL,
    Category.PHONE: ContentType.PHONE,
    Category.FILE: ContentType.FILE,
    Category.PATH: ContentType.FILE,
    Category.JSON: ContentType.JSON,
    Category.NUMBER: ContentType.TEXT,
}


@dataclass(frozen=True)
class Classification:
    category: Category
    content_type: ContentType
    title: str
    is_password: bool


def all_categories():
    return [category.value for category in Category]


def generate_title(content: str) -> str:
    truncated = content[:TITLE_MAX_LENGTH]
    title = _NEWLINES.sub(" ", truncated).strip()
    if len(content) > TITLE_MAX_LENGTH:
        title += ELLIPSIS
    return title


def _has_whitespace(content: str) -> bool:
    return any(char.isspace() for char in content)


def _is_url(content: str) -> bool:
    lower = content.lower()
    return lower.startswith(("http://", "https://")) or "www." in lower


def _is_email(content: str) -> bool:
    return "@" in content and "." in content and not _has_whitespace(content)


def _is_phone(content: str) -> bool:
    if len(content) < PHONE_MIN_DIGITS:
        return False
    if not all(char in PHONE_CHARS for char in content):
        return False
    return sum(char.isdigit() for char in content) >= PHONE_MIN_DIGITS


def _is_file(content: str) -> bool:
    if "." not in content or _has_whitespace(content):
        return False
    extension = content.rsplit(".", 1)[1].lower()
    return extension in FILE_EXTENSIONS


def _is_path(content: str) -> bool:
    return "/" in content and content.startswith(("/", "~", "."))


def _is_json(content: str) -> bool:
    trimmed = content.strip()
    return trimmed.startswith("{") and trimmed.endswith("}")


def _is_number(content: str) -> bool:
    trimmed = content.strip()
    if not trimmed:
        return False
    return all(char in NUMBER_CHARS for char in trimmed if not char.isspace())


# First match wins
_CASCADE = (
    (Category.URL, _is_url),
    (Category.EMAIL, _is_email),
    (Category.PHONE, _is_phone),
    (Category.FILE, _is_file),
    (Category.PATH, _is_path),
    (Category.JSON, _is_json),
    (Category.NUMBER, _is_number),
)


def detect_category(content: str) -> Category:
    if len(content) > CLASSIFY_MAX_LENGTH:
        return Category.TEXT
    for category, matches in _CASCADE:
        if matches(content):
            return category
    return Category.TEXT


def is_likely_password(content: str) -> bool:
    """Length in [8, 50] with at least three of upper/lower/digit/punctuation."""
    if not PASSWORD_MIN_LENGTH <= len(content) <= PASSWORD_MAX_LENGTH:
        return False
    classes = (
        any(char.isupper() for char in content),
        any(char.islower() for char in content),
        any(char.isdigit() for char in content),
        any(char in string.punctuation for char in content),
    )
    return sum(classes) >= 3


def classify(content: str) -> Classification:
    category = detect_category(content)
    return Classification(
        category=category,
        content_type=CONTENT_TYPE_BY_CATEGORY[category],
        title=generate_title(content),
        is_password=is_likely_password(content),
    )


class ItemBuilder:
    """Builds new, not yet persisted items from raw clipboard content."""

    def __init__(self, settings: CaptureSettings):
        self.settings = settings

    def build(self, content: str) -> Item:
        if self.settings.auto_categorize:
            detected = detect_category(content)
            category = detected.value
            content_type = CONTENT_TYPE_BY_CATEGORY[detected].value
        else:
            category = self.settings.default_category
            content_type = ContentType.TEXT.value

        now = now_utc()
        return Item(
            id=new_id(),
            content=content,
            content_type=content_type,
            title=generate_title(content),
            category=category,
            is_favorite=False,
            use_count=0,
            is_deleted=False,
            deleted_at=None,
            created_at=now,
            updated_at=now,
            last_used_at=now,
        )
