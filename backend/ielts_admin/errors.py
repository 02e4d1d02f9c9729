from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .validation import ValidationIssue


class ImportPipelineError(Exception):
    """Base class for admin import failures."""


class ExtractionError(ImportPipelineError):
    def __init__(self, filename: Optional[str], message: str) -> None:
        self.filename = filename
        self.message = message
        label = filename or "input"
        super().__init__(f"{label}: {message}")


class PaperValidationFailed(ImportPipelineError):
    def __init__(self, issues: List["ValidationIssue"]) -> None:
        self.issues = issues
        super().__init__(f"{len(issues)} validation error(s)")

    @property
    def messages(self) -> List[str]:
        return [str(issue) for issue in self.issues]


class PersistenceError(ImportPipelineError):
    def __init__(
        self,
        message: str,
        *,
        paper_id: Optional[int] = None,
        duplicate: bool = False,
        compensated: bool = False,
    ) -> None:
        self.message = message
        self.paper_id = paper_id
        self.duplicate = duplicate
        self.compensated = compensated
        super().__init__(message)


class CompletionError(ImportPipelineError):
    """Completion endpoint failed or returned no usable output."""
