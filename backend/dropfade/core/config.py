# dropfade/core/config.py

import os
from typing import List, Optional

from pydantic import BaseModel, Field

# =========================
# CONFIGURATION
# =========================

# Everything is read from the environment once, in Settings.from_env().
# Store adapters receive their endpoint and credentials from here rather
# than from process-global client state.


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    code_length: int = Field(6, ge=4, le=32)
    max_file_size: int = 5 * 1024 * 1024
    max_text_length: int = 1000
    verify_unique_codes: bool = True
    code_attempts: int = Field(5, ge=1)

    upstash_url: Optional[str] = None
    upstash_token: Optional[str] = None

    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "dropfade"

    store_timeout_seconds: float = 10.0
    sweep_interval_seconds: float = 300.0

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    @property
    def uses_upstash(self) -> bool:
        return bool(self.upstash_url and self.upstash_token)

    @property
    def uses_cloudinary(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            code_length=int(os.getenv("CODE_LENGTH", "6")),
            max_file_size=int(os.getenv("MAX_FILE_SIZE", "5242880")),
            max_text_length=int(os.getenv("MAX_TEXT_LENGTH", "1000")),
            verify_unique_codes=_env_bool("VERIFY_UNIQUE_CODES", True),
            code_attempts=int(os.getenv("CODE_ATTEMPTS", "5")),
            upstash_url=os.getenv("UPSTASH_REDIS_REST_URL"),
            upstash_token=os.getenv("UPSTASH_REDIS_REST_TOKEN"),
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY"),
            cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET"),
            cloudinary_folder=os.getenv("CLOUDINARY_FOLDER", "dropfade"),
            store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "10")),
            sweep_interval_seconds=float(os.getenv("SWEEP_INTERVAL_SECONDS", "300")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
