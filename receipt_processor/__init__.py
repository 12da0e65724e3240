"""Receipt Processor: upload receipts, OCR them, extract transactions with an LLM and persist the result."""

__version__ = "1.0.0"
