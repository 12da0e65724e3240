"""Prompt templates for the receipt extraction agent."""

RECEIPT_TEXT_PLACEHOLDER = "{receipt_text}"

DEFAULT_PROMPT_TEMPLATE = """Analyze the following receipt text and extract structured information in JSON format.

Extract the following information:
- date: transaction date (YYYY-MM-DD format)
- merchant_raw: merchant name as it appears
- merchant_clean: cleaned/normalized merchant name
- category: spending category (e.g., groceries, restaurant, gas, shopping, entertainment, etc.)
- amount: total amount
- currency: currency code (e.g., USD, EUR, IDR)
- confidence: your confidence level (0.0 to 1.0)

Return ONLY a valid JSON object with these fields. If you cannot extract a field, use null.
Example: {"date":"2024-01-15","merchant_raw":"WALMART #1234","merchant_clean":"Walmart","category":"groceries","amount":45.67,"currency":"USD","confidence":0.95}"""

CONNECTION_TEST_PROMPT = "Hello, respond with 'OK' if you can understand this."


def render_prompt(template: str | None, receipt_text: str) -> str:
    """Insert the receipt text into a prompt template.

    Templates containing `{receipt_text}` get it substituted in place; any other template has the
    text appended under a "Receipt Text:" heading. Literal braces in templates are left alone.
    """
    template = template or DEFAULT_PROMPT_TEMPLATE
    if RECEIPT_TEXT_PLACEHOLDER in template:
        return template.replace(RECEIPT_TEXT_PLACEHOLDER, receipt_text)
    return f"{template}\n\nReceipt Text:\n{receipt_text}"
