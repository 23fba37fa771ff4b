"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    relay_env: str = "development"
    relay_log_level: str = "debug"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Moderation timing
    auto_remove_ms: int = 5000
    shape_check_timeout_ms: int = 8000

    # OCR (Tesseract)
    ocr_enabled: bool = True
    ocr_language: str = "eng"
    tesseract_cmd: str = ""  # empty = use tesseract from PATH

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
