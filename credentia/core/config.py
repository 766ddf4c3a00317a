"""
Centralized configuration read from environment variables.
Values may be supplied through a local .env file.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


def _optional_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return Path(raw)


class Settings:
    """Application settings snapshot taken at construction time."""

    def __init__(self):
        # Server
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PORT", "8000"))
        self.debug: bool = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")

        # MongoDB
        self.mongodb_url: str = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
        self.database_name: str = os.getenv("DATABASE_NAME", "credentia")

        # Auth
        self.secret_key: str = os.getenv("SECRET_KEY", "change-me-in-production")
        self.algorithm: str = "HS256"
        self.access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

        # Storage
        self.storage_dir: Path = Path(os.getenv("STORAGE_DIR", os.path.join(os.getcwd(), "uploads")))
        self.storage_base_url: str = os.getenv("STORAGE_BASE_URL", "http://localhost:8000/uploads")
        self.max_upload_size: int = int(os.getenv("MAX_UPLOAD_SIZE", "20971520"))  # 20MB

        # Fonts: one registered family, one file per style
        self.font_family: str = os.getenv("FONT_FAMILY", "Arial")
        self.font_regular_path: Optional[Path] = _optional_path("FONT_REGULAR_PATH")
        self.font_bold_path: Optional[Path] = _optional_path("FONT_BOLD_PATH")
        self.font_italic_path: Optional[Path] = _optional_path("FONT_ITALIC_PATH")
        self.font_bold_italic_path: Optional[Path] = _optional_path("FONT_BOLD_ITALIC_PATH")

        # Final render surface; unset means the template's native resolution
        self.artifact_surface_width: Optional[int] = _optional_int("ARTIFACT_SURFACE_WIDTH")
        self.artifact_surface_height: Optional[int] = _optional_int("ARTIFACT_SURFACE_HEIGHT")
        self.preview_max_width: int = int(os.getenv("PREVIEW_MAX_WIDTH", "800"))

        # Links and notifications
        self.public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000")
        self.notification_webhook_url: Optional[str] = os.getenv("NOTIFICATION_WEBHOOK_URL") or None
        self.notification_timeout: int = int(os.getenv("NOTIFICATION_TIMEOUT", "10"))

        # CORS
        self.cors_origins: List[str] = [
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
        ]

    def credential_link(self, credential_id: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/credentials/{credential_id}"

    def verification_link(self, credential_id: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/verify/{credential_id}"


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
