"""Configuration and environment settings for the Receipt Processor."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the Receipt Processor."""

    database_url: str = "sqlite:///receipts.db"
    db_pool_size: int = 5
    db_max_overflow: int = 20
    db_pool_recycle: int = 300

    storage_backend: str = "local"
    upload_dir: str = "uploads"
    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_bucket: str = "receipts"

    groq_api_key: str = ""
    extraction_model: str = "llama-3.3-70b-versatile"
    extraction_temperature: float = 0.2
    extraction_top_p: float = 0.8
    extraction_max_completion_tokens: int = 2048
    extraction_stream: bool = False
    extraction_prompt: str | None = None
    extraction_timeout_seconds: float = 60.0

    ocr_language: str = "eng"
    tesseract_cmd: str | None = None
    ocr_timeout_seconds: float = 60.0

    log_dir: str = "logs"
    server_host: str = "127.0.0.1"
    server_port: int = 3000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def get_settings() -> "Settings":
    """Return an instance of the application settings."""
    return Settings()
