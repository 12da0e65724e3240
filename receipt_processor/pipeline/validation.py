"""Upload validation: the content-type allow-list."""

import mimetypes

from receipt_processor.core.exceptions import UnsupportedFileTypeError

PDF_CONTENT_TYPE = "application/pdf"

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        PDF_CONTENT_TYPE,
    }
)

INVALID_TYPE_MESSAGE = "Invalid file type. Allowed: images (jpg, png, gif, webp) and PDF"


def resolve_content_type(declared: str | None, filename: str | None) -> str:
    """Return the accepted content type for an upload or raise UnsupportedFileTypeError.

    A missing declared type is guessed from the file name's extension.
    """
    content_type = (declared or "").split(";")[0].strip().lower()
    if not content_type and filename:
        content_type = mimetypes.guess_type(filename)[0] or ""
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedFileTypeError(INVALID_TYPE_MESSAGE)
    return content_type


def is_pdf(content_type: str) -> bool:
    """Check whether a resolved content type is PDF."""
    return content_type == PDF_CONTENT_TYPE
