"""API package: provides FastAPI dependencies and route definitions for the application."""

from .dependencies import get_agent, get_file_service, get_ocr_service, get_pipeline, get_store  # noqa: F401
from .routes import router  # noqa: F401
