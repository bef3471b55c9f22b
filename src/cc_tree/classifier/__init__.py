"""Content classification for tool inputs, tool results and message text."""

from .core import ClassificationCache, ContentClassifier, classify_from_structured_data
from .results import (
    ClassificationContext,
    ClassificationResult,
    ContentType,
    DisplayStrategy,
)

__all__ = [
    "ClassificationCache",
    "ClassificationContext",
    "ClassificationResult",
    "ContentClassifier",
    "ContentType",
    "DisplayStrategy",
    "classify_from_structured_data",
]
