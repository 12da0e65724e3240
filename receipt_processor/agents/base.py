"""Base agent abstraction for receipt extraction agents.

This module defines the abstract base class for all extraction agents, enforcing a standard
interface for turning OCR text into the raw model answer that the pipeline parses.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .receipt_agent import AnalysisResult


class BaseExtractionAgent(ABC):
    """Abstract base class for all extraction agents."""

    @abstractmethod
    def analyze(self, text: str) -> "AnalysisResult":
        """Submit receipt text to the model and return its raw answer.

        Raises ExtractionError when the capability fails or returns no candidate.
        """
