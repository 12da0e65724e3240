"""Pydantic models for the Receipt Processor.

This module defines the lifecycle and stage status enums, the structured fields returned by the
extraction capability, the nullable transaction record derived from them, and the per-stage
reports and response bodies returned to API callers.
"""

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict

from receipt_processor.core.utils import as_float


class ReceiptStatus(str, Enum):
    """Lifecycle state of a receipt."""

    NEEDS_REVIEW = "needs_review"
    PROCESSED = "processed"
    ERROR = "error"


class StageStatus(str, Enum):
    """Outcome of a single pipeline stage."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class ParsedReceipt(BaseModel):
    """Structured fields returned by the extraction capability."""

    date: str | None = None
    merchant_raw: str | None = None
    merchant_clean: str | None = None
    category: str | None = None
    amount: float | None = None
    currency: str | None = None
    confidence: float | None = None

    def to_transaction(self) -> "TransactionRecord":
        """Convert to a storable record: blanks become null, amount and confidence <= 0 become null."""
        return TransactionRecord(
            date=_parse_date(self.date),
            merchant_raw=_blank_to_none(self.merchant_raw),
            merchant_clean=_blank_to_none(self.merchant_clean),
            category=_blank_to_none(self.category),
            amount=_positive_or_none(self.amount),
            currency=_blank_to_none(self.currency),
            confidence=_positive_or_none(self.confidence),
        )


class TransactionRecord(BaseModel):
    """Nullable transaction fields as persisted."""

    date: dt.date | None = None
    merchant_raw: str | None = None
    merchant_clean: str | None = None
    category: str | None = None
    amount: float | None = None
    currency: str | None = None
    confidence: float | None = None


class OCRStageReport(BaseModel):
    """Outcome of the OCR stage."""

    status: StageStatus
    text: str = ""
    error: str = ""


class ExtractionStageReport(BaseModel):
    """Outcome of the extraction stage."""

    status: StageStatus
    analysis: str = ""
    error: str = ""
    parse_error: str = ""
    token_count: int = 0
    transaction_id: int | None = None
    parsed: ParsedReceipt | None = None


class IngestResponse(BaseModel):
    """Response body for a successfully ingested receipt."""

    success: bool = True
    receipt_id: int
    uuid: str
    original_name: str
    stored_name: str
    file_size: int
    content_type: str
    upload_time: str
    file_path: str
    status: ReceiptStatus
    ocr: OCRStageReport
    extraction: ExtractionStageReport


class ReceiptOut(BaseModel):
    """A stored receipt row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: str
    file_name: str
    original_name: str
    content_type: str
    status: ReceiptStatus
    uploaded_at: dt.datetime


class TransactionOut(BaseModel):
    """A stored transaction row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    receipt_id: int
    date: dt.date | None = None
    merchant_raw: str | None = None
    merchant_clean: str | None = None
    category: str | None = None
    amount: float | None = None
    currency: str | None = None
    confidence: float | None = None
    created_at: dt.datetime


class ReceiptDetail(BaseModel):
    """A receipt together with its transaction, if any."""

    receipt: ReceiptOut
    transaction: TransactionOut | None = None


class AnalyzeRequest(BaseModel):
    """Body of the standalone text analysis endpoint."""

    text: str = ""


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _positive_or_none(value: float | None) -> float | None:
    # Zero or negative is treated as "not extracted", not as a measurement.
    number = as_float(value)
    if number is None or number <= 0:
        return None
    return number


def _parse_date(value: str | None) -> dt.date | None:
    value = _blank_to_none(value)
    if value is None:
        return None
    try:
        return dt.datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None
