"""FastAPI endpoints for the Receipt Processor API.

This module defines the receipt ingestion endpoint, receipt lookups, the standalone OCR and
extraction endpoints, and health checks. It wires the ingestion pipeline to HTTP: validation and
fatal storage/registration failures become error responses, while per-stage failures are reported
inside a 201 response body.
"""

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse

from receipt_processor import __version__
from receipt_processor.api.dependencies import get_agent, get_ocr_service, get_pipeline, get_store
from receipt_processor.agents.receipt_agent import ReceiptAgent
from receipt_processor.core.db import ReceiptStore
from receipt_processor.core.exceptions import (
    ExtractionError,
    OCRError,
    RegistrationError,
    StageTimeoutError,
    StorageError,
    UnsupportedFileTypeError,
)
from receipt_processor.core.models import AnalyzeRequest, IngestResponse, ReceiptDetail, ReceiptOut, ReceiptStatus
from receipt_processor.core.settings import Settings, get_settings
from receipt_processor.core.utils import get_logger
from receipt_processor.pipeline.deadline import call_with_deadline
from receipt_processor.pipeline.ingest import IngestPipeline
from receipt_processor.services.ocr_service import OCRService

router = APIRouter()
logger = get_logger("receipt-processor.api")

ENDPOINTS = {
    "POST /receipts/ingest": "Upload a receipt, OCR it and extract its transaction",
    "GET  /receipts": "List stored receipts",
    "GET  /receipts/{id}": "Show a receipt and its transaction",
    "POST /ocr": "Upload an image to extract text using OCR",
    "POST /extraction/test": "Test the extraction model connection",
    "GET  /extraction/models": "List available extraction models",
    "POST /extraction/analyze": "Analyze text with the extraction model",
    "GET  /health": "Health check",
}


@router.get("/", summary="Service index")
async def index() -> dict:
    """Describe the service and its endpoints."""
    return {"message": "Receipt Processor API", "version": __version__, "endpoints": ENDPOINTS}


@router.post(
    "/receipts/ingest",
    status_code=201,
    response_model=IngestResponse,
    summary="Upload a receipt and run it through OCR and extraction",
    description=(
        "Store an uploaded receipt, register it as `needs_review`, OCR it (images only) and extract its "
        "transaction with the LLM. The request succeeds once the file is stored and registered; the `ocr` "
        "and `extraction` objects report each stage as `success`, `failed` or `skipped`.\n\n"
        "**Request:**\n"
        "- Content-Type: multipart/form-data\n"
        "- Form field: `file` (JPEG, PNG, GIF, WEBP or PDF)\n\n"
        "**Response:**\n"
        "- 201 Created: receipt identifiers, file metadata, lifecycle status and stage reports.\n"
        "- 400 Bad Request: missing file or disallowed content type.\n"
        "- 500 Internal Server Error: the file or the receipt row could not be saved."
    ),
    responses={
        400: {
            "description": "Missing file or disallowed content type.",
            "content": {"application/json": {"example": {"error": "No file provided"}}},
        },
        500: {
            "description": "File or receipt could not be saved.",
            "content": {"application/json": {"example": {"error": "Failed to save file"}}},
        },
    },
)
def ingest_receipt(
    file: UploadFile | None = File(None),
    pipeline: IngestPipeline = Depends(get_pipeline),
) -> IngestResponse:
    """Ingest an uploaded receipt."""
    if file is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "No file provided")
    filename = file.filename or ""
    logger.info(f"Received ingest request: filename={filename}, content_type={file.content_type}")
    data = file.file.read()
    try:
        return pipeline.ingest(data, filename, file.content_type)
    except UnsupportedFileTypeError as exc:
        logger.warning(f"Rejected file {filename!r}: {exc}")
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save file") from exc
    except RegistrationError as exc:
        logger.exception("Failed to insert receipt into database")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save receipt to database") from exc


@router.get("/receipts", response_model=list[ReceiptOut], summary="List receipts")
def list_receipts(
    status_filter: ReceiptStatus | None = Query(None, alias="status"),
    limit: int = 50,
    store: ReceiptStore = Depends(get_store),
) -> list[dict]:
    """List receipts, newest first, optionally filtered by lifecycle state."""
    return store.list_receipts(status_filter, limit=max(1, min(limit, 500)))


@router.get(
    "/receipts/{receipt_id}",
    response_model=ReceiptDetail,
    summary="Get a receipt and its transaction",
    responses={404: {"content": {"application/json": {"example": {"error": "Receipt not found"}}}}},
)
def get_receipt(receipt_id: int, store: ReceiptStore = Depends(get_store)) -> dict:
    """Return a receipt with its transaction, or null when it has none."""
    receipt = store.get_receipt(receipt_id)
    if not receipt:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Receipt not found")
    return {"receipt": receipt, "transaction": store.get_transaction(receipt_id)}


@router.post("/ocr", summary="Extract text from an image")
def ocr_image(
    image: UploadFile | None = File(None),
    ocr: OCRService = Depends(get_ocr_service),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Run OCR on an uploaded image without storing it."""
    if image is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "No image file provided")
    data = image.file.read()
    try:
        text = call_with_deadline(ocr.extract_text, settings.ocr_timeout_seconds, data, stage="OCR")
    except (OCRError, StageTimeoutError) as exc:
        logger.error(f"OCR failed for {image.filename}: {exc}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, f"OCR failed: {exc}") from exc
    return {"success": True, "filename": image.filename, "text": text}


@router.post("/extraction/test", summary="Test the extraction model connection")
def check_extraction_connection(agent: ReceiptAgent = Depends(get_agent)) -> dict:
    """Ask the model for a trivial reply."""
    try:
        agent.test_connection()
    except ExtractionError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Extraction test failed: {exc}") from exc
    return {"success": True, "message": "Extraction model is connected and working"}


@router.get("/extraction/models", summary="List extraction models")
def list_extraction_models(agent: ReceiptAgent = Depends(get_agent)) -> dict:
    """List the models available to the configured credentials."""
    try:
        models = agent.list_models()
    except ExtractionError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Failed to list models: {exc}") from exc
    return {"success": True, "models": models, "count": len(models)}


@router.post("/extraction/analyze", summary="Analyze text with the extraction model")
def analyze_text(body: AnalyzeRequest, agent: ReceiptAgent = Depends(get_agent)) -> JSONResponse:
    """Run the extraction prompt over arbitrary text and return the raw answer."""
    if not body.text.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Text field is required")
    try:
        result = agent.analyze(body.text)
    except ExtractionError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Analysis failed: {exc}") from exc
    return JSONResponse(
        {"success": True, "analysis": result.text, "token_count": result.token_count, "error": ""},
    )


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
