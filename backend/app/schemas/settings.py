from pydantic import BaseModel, field_validator
from typing import Optional


class CaptureSettings(BaseModel):
    """Settings the capture pipeline consumes (read-only from its side)."""

    ignore_passwords: bool = True
    auto_capture: bool = True
    auto_categorize: bool = True
    default_category: str = "text"

    @field_validator("default_category")
    @classmethod
    def validate_default_category(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Default category cannot be empty")
        return v


class CaptureSettingsUpdate(BaseModel):
    ignore_passwords: Optional[bool] = None
    auto_capture: Optional[bool] = None
    auto_categorize: Optional[bool] = None
    default_category: Optional[str] = None

    @field_validator("default_category")
    @classmethod
    def validate_default_category(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Default category cannot be empty")
        return v


class CaptureStatus(BaseModel):
    is_running: bool
    interval_ms: int
    settings: CaptureSettings
