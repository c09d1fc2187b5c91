from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Classification for error logging."""

    PERSISTENCE = "persistence"
    SOURCE_FILE = "source_file"
    CALCULATION = "calculation"
    SPEECH = "speech"


class AssistantError(Exception):
    category: ErrorCategory


class PersistenceError(AssistantError):
    """The knowledge base could not be written to its backing file."""

    category = ErrorCategory.PERSISTENCE


class SourceFileError(AssistantError):
    """An import or export file could not be opened."""

    category = ErrorCategory.SOURCE_FILE

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class CalculationError(AssistantError, ValueError):
    category = ErrorCategory.CALCULATION
