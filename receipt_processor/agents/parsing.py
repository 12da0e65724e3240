"""Post-processing of raw extraction answers into structured receipt fields."""

from receipt_processor.core.models import ParsedReceipt


def strip_code_fences(text: str) -> str:
    """Remove a leading ``` or ```json fence and a trailing ``` fence, with surrounding whitespace."""
    cleaned = text.strip()
    cleaned = cleaned.removeprefix("```json")
    cleaned = cleaned.removeprefix("```")
    cleaned = cleaned.removesuffix("```")
    return cleaned.strip()


def parse_extraction(text: str) -> ParsedReceipt:
    """Parse a raw model answer into ParsedReceipt.

    Raises pydantic.ValidationError (a ValueError) when the answer is not a JSON object of the
    expected shape.
    """
    return ParsedReceipt.model_validate_json(strip_code_fences(text))
