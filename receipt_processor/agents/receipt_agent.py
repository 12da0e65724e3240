"""ReceiptAgent: Groq-backed extraction of structured receipt fields from OCR text.

This module defines the ReceiptAgent class, which renders the configured prompt template around the
OCR text, sends it to a chat-completion model and returns the model's raw answer. Parsing that
answer into fields is left to the caller so that a malformed answer can still be reported.
"""

from groq import Groq, GroqError
from pydantic import BaseModel

from receipt_processor.agents.base import BaseExtractionAgent
from receipt_processor.agents.prompts import CONNECTION_TEST_PROMPT, render_prompt
from receipt_processor.core.exceptions import ExtractionError
from receipt_processor.core.settings import Settings
from receipt_processor.core.utils import get_logger, truncate

MAX_PROMPT_LOG_LEN = 300

logger = get_logger("receipt-processor.agent")


class AnalysisResult(BaseModel):
    """Raw answer returned by the extraction model."""

    text: str
    token_count: int = 0


class ReceiptAgent(BaseExtractionAgent):
    """Agent that asks an LLM to turn receipt text into a JSON object."""

    def __init__(self, settings: Settings, llm_client: object | None = None) -> None:
        """Initialize the ReceiptAgent with settings and an optional pre-built LLM client."""
        self.settings = settings
        self._llm_client = llm_client

    @property
    def llm_client(self) -> object:
        """Return the LLM client, creating a Groq client on first use."""
        if self._llm_client is None:
            if not self.settings.groq_api_key:
                msg = "Failed to create client: GROQ_API_KEY environment variable not set"
                raise ExtractionError(msg)
            try:
                self._llm_client = Groq(
                    api_key=self.settings.groq_api_key,
                    timeout=self.settings.extraction_timeout_seconds or None,
                    max_retries=0,
                )
            except GroqError as exc:
                msg = f"Failed to create client: {exc}"
                raise ExtractionError(msg) from exc
        return self._llm_client

    def analyze(self, text: str) -> AnalysisResult:
        """Analyze receipt text with the configured prompt template."""
        prompt = render_prompt(self.settings.extraction_prompt, text)
        logger.info(f"AGENT: Analyzing {len(text)} characters of receipt text")
        return self.generate(prompt)

    def generate(self, prompt: str) -> AnalysisResult:
        """Send a single-turn prompt to the model and collect its answer."""
        logger.info(f"AGENT: PROMPT: {truncate(prompt, MAX_PROMPT_LOG_LEN)}")
        try:
            completion = self.llm_client.chat.completions.create(
                model=self.settings.extraction_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.settings.extraction_temperature,
                max_completion_tokens=self.settings.extraction_max_completion_tokens,
                top_p=self.settings.extraction_top_p,
                stream=self.settings.extraction_stream,
            )
        except GroqError as exc:
            msg = f"Failed to generate content: {exc}"
            logger.exception(msg)
            raise ExtractionError(msg) from exc
        if self.settings.extraction_stream:
            result = self._collect_stream(completion)
        else:
            result = self._collect_completion(completion)
        logger.info(f"AGENT: OUTPUT: {truncate(result.text, MAX_PROMPT_LOG_LEN)}")
        return result

    def _collect_completion(self, completion: object) -> AnalysisResult:
        """Read the first candidate of a non-streamed completion."""
        if not completion.choices:
            msg = "No response candidates returned"
            raise ExtractionError(msg)
        text = completion.choices[0].message.content or ""
        usage = getattr(completion, "usage", None)
        token_count = usage.total_tokens if usage is not None else 0
        return AnalysisResult(text=text, token_count=token_count)

    def _collect_stream(self, completion: object) -> AnalysisResult:
        """Collect the full output from a completion stream."""
        raw_output = ""
        received = False
        try:
            for chunk in completion:
                if not chunk.choices:
                    continue
                received = True
                raw_output += chunk.choices[0].delta.content or ""
        except GroqError as exc:
            msg = f"Groq streaming error: {exc}"
            logger.exception(msg)
            raise ExtractionError(msg) from exc
        if not received:
            msg = "No response candidates returned"
            raise ExtractionError(msg)
        return AnalysisResult(text=raw_output)

    def test_connection(self) -> str:
        """Ask the model for a trivial reply to prove the credentials and model work."""
        result = self.generate(CONNECTION_TEST_PROMPT)
        logger.info(f"Extraction connection test successful. Response: {result.text}")
        return result.text

    def list_models(self) -> list[str]:
        """List the model ids available to the configured credentials."""
        try:
            page = self.llm_client.models.list()
        except GroqError as exc:
            msg = f"Failed to list models: {exc}"
            raise ExtractionError(msg) from exc
        models = [model.id for model in page.data]
        if not models:
            msg = "no models found"
            raise ExtractionError(msg)
        return models
