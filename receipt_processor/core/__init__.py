"""Core package: provides models, database helpers, settings, exceptions, and shared utilities."""

from .db import ReceiptStore, get_db  # noqa: F401
from .models import ExtractionStageReport, IngestResponse, OCRStageReport, ReceiptStatus, StageStatus  # noqa: F401
from .settings import Settings, get_settings  # noqa: F401
from .utils import get_logger  # noqa: F401
