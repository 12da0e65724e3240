"""Pipeline package: the receipt ingestion state machine and its helpers."""

from .deadline import call_with_deadline  # noqa: F401
from .ingest import IngestPipeline  # noqa: F401
from .validation import ALLOWED_CONTENT_TYPES, resolve_content_type  # noqa: F401
