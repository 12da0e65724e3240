"""Receipt ingestion pipeline: storage, registration, OCR, extraction and persistence.

A request moves through the stages strictly in order. Storage and registration are fatal when they
fail; OCR, extraction and transaction persistence only degrade their own stage report. Nothing a
later stage does rolls back what an earlier stage committed.
"""

import uuid

from pydantic import ValidationError

from receipt_processor.agents.base import BaseExtractionAgent
from receipt_processor.agents.parsing import parse_extraction
from receipt_processor.core.db import ReceiptStore
from receipt_processor.core.exceptions import (
    ExtractionError,
    OCRError,
    PersistenceError,
    StageTimeoutError,
    StorageError,
)
from receipt_processor.core.models import (
    ExtractionStageReport,
    IngestResponse,
    OCRStageReport,
    ReceiptStatus,
    StageStatus,
)
from receipt_processor.core.settings import Settings
from receipt_processor.core.utils import get_logger, utcnow
from receipt_processor.pipeline.deadline import call_with_deadline
from receipt_processor.pipeline.validation import is_pdf, resolve_content_type
from receipt_processor.services.file_service import FileService, build_stored_name
from receipt_processor.services.ocr_service import OCRService

logger = get_logger("receipt-processor.pipeline")

PDF_SKIP_REASON = "PDF files require separate processing"
NO_TEXT_SKIP_REASON = "no OCR text available"
PERSISTENCE_LOST_MARKER = "TRANSACTION PERSISTENCE LOST"


class IngestPipeline:
    """Orchestrates one receipt upload through every stage and reports the outcome of each."""

    def __init__(
        self,
        store: ReceiptStore,
        file_service: FileService,
        ocr: OCRService,
        agent: BaseExtractionAgent,
        settings: Settings,
    ) -> None:
        """Initialize the pipeline with its storage, OCR, extraction and persistence collaborators."""
        self.store = store
        self.file_service = file_service
        self.ocr = ocr
        self.agent = agent
        self.settings = settings

    def ingest(self, data: bytes, original_name: str, declared_type: str | None) -> IngestResponse:
        """Run a single upload through the pipeline.

        Raises UnsupportedFileTypeError before any side effect, and StorageError or
        RegistrationError when the upload cannot be stored or tracked.
        """
        content_type = resolve_content_type(declared_type, original_name)
        receipt_uuid = str(uuid.uuid4())
        uploaded_at = utcnow()
        stored_name = build_stored_name(receipt_uuid, original_name, uploaded_at)
        logger.info(f"Ingesting {original_name!r} ({content_type}, {len(data)} bytes) as {stored_name}")

        try:
            file_path = self.file_service.save_file(stored_name, data)
        except StorageError:
            logger.exception(f"Failed to save file {stored_name}")
            raise

        receipt_id = self.store.insert_receipt(
            receipt_uuid=receipt_uuid,
            file_name=stored_name,
            original_name=original_name,
            content_type=content_type,
            status=ReceiptStatus.NEEDS_REVIEW,
            uploaded_at=uploaded_at,
        )
        logger.info(f"Registered receipt {receipt_id} ({receipt_uuid}) as {ReceiptStatus.NEEDS_REVIEW.value}")

        ocr_report = self.run_ocr(stored_name, content_type)
        extraction_report = self.run_extraction(receipt_id, ocr_report)
        status = ReceiptStatus.PROCESSED if extraction_report.transaction_id is not None else ReceiptStatus.NEEDS_REVIEW

        return IngestResponse(
            receipt_id=receipt_id,
            uuid=receipt_uuid,
            original_name=original_name,
            stored_name=stored_name,
            file_size=len(data),
            content_type=content_type,
            upload_time=uploaded_at.isoformat(timespec="seconds"),
            file_path=file_path,
            status=status,
            ocr=ocr_report,
            extraction=extraction_report,
        )

    def run_ocr(self, stored_name: str, content_type: str) -> OCRStageReport:
        """Read the stored file back and OCR it; PDFs are skipped."""
        if is_pdf(content_type):
            logger.info(f"OCR: skipped for {stored_name}: {PDF_SKIP_REASON}")
            return OCRStageReport(status=StageStatus.SKIPPED, error=PDF_SKIP_REASON)
        try:
            data = self.file_service.get_file(stored_name)
        except StorageError as exc:
            logger.error(f"OCR: {exc}")
            return OCRStageReport(status=StageStatus.FAILED, error=str(exc))
        try:
            text = call_with_deadline(self.ocr.extract_text, self.settings.ocr_timeout_seconds, data, stage="OCR")
        except (OCRError, StageTimeoutError) as exc:
            logger.error(f"OCR: failed for {stored_name}: {exc}")
            return OCRStageReport(status=StageStatus.FAILED, error=str(exc))
        logger.info(f"OCR: success for {stored_name} ({len(text)} characters)")
        return OCRStageReport(status=StageStatus.SUCCESS, text=text)

    def run_extraction(self, receipt_id: int, ocr_report: OCRStageReport) -> ExtractionStageReport:
        """Extract structured fields from the OCR text and persist them as a transaction."""
        # Tesseract ends every page with a form feed, so a blank image is never "".
        if ocr_report.status != StageStatus.SUCCESS or not ocr_report.text.strip():
            logger.info(f"Extraction: skipped for receipt {receipt_id}: {NO_TEXT_SKIP_REASON}")
            return ExtractionStageReport(status=StageStatus.SKIPPED, error=NO_TEXT_SKIP_REASON)
        try:
            result = call_with_deadline(
                self.agent.analyze,
                self.settings.extraction_timeout_seconds,
                ocr_report.text,
                stage="extraction",
            )
        except (ExtractionError, StageTimeoutError) as exc:
            logger.error(f"Extraction: failed for receipt {receipt_id}: {exc}")
            return ExtractionStageReport(status=StageStatus.FAILED, error=str(exc))

        report = ExtractionStageReport(
            status=StageStatus.SUCCESS,
            analysis=result.text,
            token_count=result.token_count,
        )
        try:
            parsed = parse_extraction(result.text)
        except ValidationError as exc:
            report.parse_error = f"Failed to parse JSON: {exc}"
            logger.warning(f"Extraction: unparseable answer for receipt {receipt_id}: {exc}")
            return report
        report.parsed = parsed

        try:
            report.transaction_id = self.store.record_transaction(receipt_id, parsed.to_transaction())
        except PersistenceError as exc:
            logger.error(f"{PERSISTENCE_LOST_MARKER}: receipt {receipt_id} stays {ReceiptStatus.NEEDS_REVIEW.value}: {exc}")
            return report
        logger.info(f"Extraction: receipt {receipt_id} processed, transaction {report.transaction_id}")
        return report
