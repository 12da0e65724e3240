"""Shared pytest fixtures: in-memory SQLite store, tmp_path blob storage, fake OCR and extraction agent."""

import io
import struct
import time
import zlib

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from receipt_processor.agents.base import BaseExtractionAgent
from receipt_processor.agents.receipt_agent import AnalysisResult
from receipt_processor.api.dependencies import get_agent, get_file_service, get_ocr_service, get_store
from receipt_processor.core.db import Base, ReceiptStore
from receipt_processor.core.exceptions import ExtractionError, OCRError
from receipt_processor.core.settings import Settings, get_settings
from receipt_processor.pipeline.ingest import IngestPipeline
from receipt_processor.services.file_service import FileService
from receipt_processor.services.local_file_service import LocalFileService

WALMART_TEXT = "WALMART\n01/15/2024\n$45.67"
WALMART_JSON = (
    '{"date":"2024-01-15","merchant_raw":"WALMART","merchant_clean":"Walmart",'
    '"category":"groceries","amount":45.67,"currency":"USD","confidence":0.9}'
)
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00fake-jpeg-body"
PDF_BYTES = b"%PDF-1.4\n%fake pdf body\n"


def oversized_png_bytes(width: int = 20000, height: int = 20000) -> bytes:
    """A valid PNG whose header declares far more pixels than Pillow will open."""
    buf = io.BytesIO()
    Image.new("L", (4, 4), color=255).save(buf, format="PNG")
    png = buf.getvalue()
    # Signature, then the IHDR chunk: length, type, 13 data bytes, CRC.
    ihdr = struct.pack(">II", width, height) + png[24:29]
    crc = struct.pack(">I", zlib.crc32(b"IHDR" + ihdr) & 0xFFFFFFFF)
    return png[:16] + ihdr + crc + png[33:]


class FakeOCR:
    """OCR stand-in returning a fixed text or raising OCRError."""

    def __init__(self, text: str = WALMART_TEXT, error: str | None = None, delay: float = 0.0) -> None:
        self.text = text
        self.error = error
        self.delay = delay
        self.calls: list[bytes] = []

    def extract_text(self, data: bytes) -> str:
        self.calls.append(data)
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise OCRError(self.error)
        return self.text


class FakeAgent(BaseExtractionAgent):
    """Extraction stand-in returning a fixed answer or raising ExtractionError."""

    def __init__(self, answer: str = WALMART_JSON, error: str | None = None, delay: float = 0.0) -> None:
        self.answer = answer
        self.error = error
        self.delay = delay
        self.models = ["llama-3.3-70b-versatile"]
        self.calls: list[str] = []

    def analyze(self, text: str) -> AnalysisResult:
        self.calls.append(text)
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise ExtractionError(self.error)
        return AnalysisResult(text=self.answer, token_count=42)

    def test_connection(self) -> str:
        if self.error:
            raise ExtractionError(self.error)
        return "OK"

    def list_models(self) -> list[str]:
        if not self.models:
            msg = "no models found"
            raise ExtractionError(msg)
        return self.models


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        upload_dir=str(tmp_path / "uploads"),
        log_dir=str(tmp_path / "logs"),
        ocr_timeout_seconds=5,
        extraction_timeout_seconds=5,
    )


@pytest.fixture
def session_factory() -> sessionmaker:
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> ReceiptStore:
    return ReceiptStore(session_factory)


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def file_service(upload_dir) -> FileService:
    return FileService(LocalFileService(upload_dir))


@pytest.fixture
def fake_ocr() -> FakeOCR:
    return FakeOCR()


@pytest.fixture
def fake_agent() -> FakeAgent:
    return FakeAgent()


@pytest.fixture
def pipeline(store, file_service, fake_ocr, fake_agent, settings) -> IngestPipeline:
    return IngestPipeline(store, file_service, fake_ocr, fake_agent, settings)


@pytest.fixture
def client(store, file_service, fake_ocr, fake_agent, settings) -> TestClient:
    """TestClient with every pipeline collaborator replaced by a fixture."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_file_service] = lambda: file_service
    app.dependency_overrides[get_ocr_service] = lambda: fake_ocr
    app.dependency_overrides[get_agent] = lambda: fake_agent
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()
