"""FastAPI dependencies for DI (settings, store, storage, OCR, agent, pipeline).

Every collaborator of the ingestion pipeline is provided here so tests can swap any of them through
`app.dependency_overrides` without touching a real database, disk, Tesseract or Groq.
"""

from functools import lru_cache

from fastapi import Depends

from receipt_processor.agents.base import BaseExtractionAgent
from receipt_processor.agents.receipt_agent import ReceiptAgent
from receipt_processor.core.db import ReceiptStore, get_db
from receipt_processor.core.settings import Settings, get_settings
from receipt_processor.pipeline.ingest import IngestPipeline
from receipt_processor.services.file_service import FileService, build_file_service
from receipt_processor.services.ocr_service import OCRService


def get_store() -> ReceiptStore:
    """Provide the relational store for dependency injection."""
    return get_db()


@lru_cache(maxsize=1)
def get_file_service() -> FileService:
    """Provide the configured blob storage service, built once per process."""
    return build_file_service(get_settings())


def get_ocr_service(settings: Settings = Depends(get_settings)) -> OCRService:
    """Provide an OCRService instance."""
    return OCRService.from_settings(settings)


def get_agent(settings: Settings = Depends(get_settings)) -> ReceiptAgent:
    """Provide a ReceiptAgent instance; the Groq client is created on first use."""
    return ReceiptAgent(settings)


def get_pipeline(
    store: ReceiptStore = Depends(get_store),
    file_service: FileService = Depends(get_file_service),
    ocr: OCRService = Depends(get_ocr_service),
    agent: BaseExtractionAgent = Depends(get_agent),
    settings: Settings = Depends(get_settings),
) -> IngestPipeline:
    """Provide an IngestPipeline wired to the injected collaborators."""
    return IngestPipeline(store, file_service, ocr, agent, settings)
