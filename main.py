"""Main entrypoint and application setup for the Receipt Processor API.

This module initializes the FastAPI application, configures logging, creates the database tables
and upload directory on startup, renders every HTTP error as `{"error": ...}`, and exposes the
Scalar API reference endpoint for interactive OpenAPI documentation. It also includes the main
entrypoint for running the app with Uvicorn.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from receipt_processor import __version__
from receipt_processor.api.routes import router
from receipt_processor.core.db import init_db
from receipt_processor.core.settings import get_settings
from receipt_processor.core.utils import LOGGER_NAMESPACE, add_file_handler, ensure_dir, get_logger


# --- Logging Setup ---
def setup_logging() -> None:
    """Configure logging to console and to the processing log file."""
    settings = get_settings()
    logger = get_logger(LOGGER_NAMESPACE)
    logger.setLevel(logging.INFO)
    add_file_handler(logger, settings.log_dir, "receipt_processing.log")
    # Child loggers carry their own console handler; give them the file handler too.
    for name in ("api", "pipeline", "agent", "ocr", "storage", "store"):
        child = get_logger(f"{LOGGER_NAMESPACE}.{name}")
        child.setLevel(logging.INFO)
        add_file_handler(child, settings.log_dir, "receipt_processing.log")


setup_logging()
logger = get_logger(LOGGER_NAMESPACE)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan event handler to create the upload directory and the receipts/transactions tables."""
    _ = app  # Silence unused argument warning
    settings = get_settings()
    if settings.storage_backend == "local":
        ensure_dir(settings.upload_dir)
    try:
        init_db()
    except SQLAlchemyError:
        logger.exception("Failed to create receipts or transactions table")
        raise
    logger.info("Database tables created/verified")
    yield


app = FastAPI(
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    title="Receipt Processor API",
    description="""
    The Receipt Processor API ingests receipt images and PDFs, extracts their text with OCR, asks an LLM for the
    transaction fields and stores the result.

    **Endpoints:**
    - `POST /receipts/ingest`: Upload a receipt and run it through OCR and extraction.
    - `GET /receipts/{{receipt_id}}`: Show a receipt and its extracted transaction.
    - `POST /ocr`: OCR an image without storing it.
    - `POST /extraction/analyze`: Run the extraction prompt over arbitrary text.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
    version=__version__,
)
app.include_router(router)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as `{"error": message}`."""
    _ = request
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400 `{"error": message}`."""
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse({"error": "Invalid request"}, status_code=400)


@app.get("/scalar", include_in_schema=False)
async def scalar_docs() -> JSONResponse:
    """Return Scalar API reference."""
    return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.server_host, port=settings.server_port, reload=True)
