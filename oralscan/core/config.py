from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env lives in the project root: oralscan/core/config.py -> oralscan/core -> oralscan -> root
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"

DEFAULT_SECRET_KEY = "change-me-in-production"
ACCEPTED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png")


class Settings(BaseSettings):
    secret_key: str = DEFAULT_SECRET_KEY
    database_url: str = "sqlite:///./oralscan.db"
    access_token_expire_minutes: int = 60 * 24
    # CORS: comma separated origins; in production e.g. https://clinic.example.com
    cors_origins: str = "*"
    rate_limit_per_minute: int = 60
    rate_limit_login_per_minute: int = 5
    rate_limit_register_per_minute: int = 3
    # Emails containing this substring are provisioned as capture operators on first login
    capture_email_marker: str = "technician"
    # Local blob store: files under blob_storage_dir, served at blob_public_base_url/<key>
    blob_storage_dir: str = str(_ROOT / "data" / "blobs")
    blob_public_base_url: str = "http://127.0.0.1:8000/blobs"
    blob_fetch_timeout_seconds: float = 10.0
    upload_max_mb: int = 10
    # Report export
    report_brand: str = "OralVis Healthcare"
    report_image_max_width_mm: float = 170.0
    report_image_max_height_mm: float = 100.0
    log_level: str = "INFO"
    environment: str = "development"  # production: refuse to start with the default secret key

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("capture_email_marker", mode="before")
    @classmethod
    def normalize_marker(cls, v: str | None) -> str:
        return (v or "").strip().lower()

    @field_validator("blob_public_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str:
        return (v or "").strip().rstrip("/")


settings = Settings()


def upload_max_bytes() -> int:
    return settings.upload_max_mb * 1024 * 1024
