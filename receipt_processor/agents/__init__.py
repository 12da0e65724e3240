"""Agents package: the extraction agent interface, the Groq-backed implementation, and its output parsing."""

from .base import BaseExtractionAgent  # noqa: F401
from .parsing import parse_extraction, strip_code_fences  # noqa: F401
from .receipt_agent import AnalysisResult, ReceiptAgent  # noqa: F401
