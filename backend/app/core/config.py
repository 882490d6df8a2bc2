from pydantic_settings import BaseSettings
from typing import List, Union, Optional
from pydantic import field_validator

from app.schemas.settings import CaptureSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./clipdeck.db"

    # LLM (tag and title suggestions)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: Optional[str] = None
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TIMEOUT: float = 30.0

    # LLM Rate Limiting & Parallelization
    LLM_MAX_CONCURRENT: int = 2  # Max concurrent LLM API calls
    LLM_TPM_LIMIT: int = 30000  # Tokens per minute limit
    LLM_MAX_INPUT_TOKENS: int = 1500  # Max tokens of clipboard content sent per request

    # Capture
    CAPTURE_INTERVAL_MS: int = 500
    AUTO_CAPTURE: bool = True
    IGNORE_PASSWORDS: bool = True
    AUTO_CATEGORIZE: bool = True
    DEFAULT_CATEGORY: str = "text"

    # Application
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    RATE_LIMIT: str = "300/minute"
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:5173"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("CAPTURE_INTERVAL_MS")
    @classmethod
    def validate_capture_interval(cls, v: int) -> int:
        if v < 50:
            raise ValueError("CAPTURE_INTERVAL_MS must be at least 50")
        return v

    @property
    def llm_configured(self) -> bool:
        """True when an API key for the tagging model is present."""
        return bool(self.OPENAI_API_KEY)

    @property
    def capture_settings(self) -> CaptureSettings:
        """The subset of settings the capture pipeline reads."""
        return CaptureSettings(
            ignore_passwords=self.IGNORE_PASSWORDS,
            auto_capture=self.AUTO_CAPTURE,
            auto_categorize=self.AUTO_CATEGORIZE,
            default_category=self.DEFAULT_CATEGORY,
        )

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env


settings = Settings()
