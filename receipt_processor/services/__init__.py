"""Services package: blob storage backends and the OCR engine adapter."""

from .file_service import FileService, build_file_service  # noqa: F401
from .ocr_service import OCRService  # noqa: F401
