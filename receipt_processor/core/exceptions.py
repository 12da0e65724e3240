"""Exception hierarchy for the ingestion pipeline and its collaborators.

Request-aborting errors (`UnsupportedFileTypeError`, `StorageError`, `RegistrationError`) are
turned into HTTP errors by the API layer. Stage-local errors (`OCRError`, `ExtractionError`,
`StageTimeoutError`, `PersistenceError`) never leave the pipeline: they are recorded on the
stage report instead.
"""


class ReceiptProcessorError(Exception):
    """Base class for all errors raised by the Receipt Processor."""


class UnsupportedFileTypeError(ReceiptProcessorError):
    """The uploaded file's content type is not on the allow-list."""


class StorageError(ReceiptProcessorError):
    """Reading or writing blob storage failed."""


class RegistrationError(ReceiptProcessorError):
    """The receipt row could not be inserted."""


class PersistenceError(ReceiptProcessorError):
    """A transaction row or status update could not be written."""


class OCRError(ReceiptProcessorError):
    """The OCR engine could not produce text for an image."""


class ExtractionError(ReceiptProcessorError):
    """The extraction capability failed or returned no usable candidate."""


class StageTimeoutError(ReceiptProcessorError, TimeoutError):
    """A pipeline stage did not finish before its deadline."""
