"""
Engine Error Types

Every failure is reported to the caller synchronously. None of them is
fatal: the engine stays usable after any single failed operation, and
it never retries on its own.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single problem with caller-supplied input."""

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(..., description="Human-readable description")


class EngineError(Exception):
    """Base exception for engine operations."""
    pass


class ValidationFailure(EngineError):
    """Input rejected before any mutation took place."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        summary = "; ".join(f"{i.field}: {i.message}" for i in issues)
        super().__init__(f"Validation failed: {summary}")

    @classmethod
    def single(cls, field: str, issue_type: str, message: str) -> "ValidationFailure":
        return cls([ValidationIssue(field=field, issue_type=issue_type, message=message)])


class NothingToSettle(EngineError):
    """No eligible sessions, or their settlements sum to exactly zero."""
    pass


class RecordNotFound(EngineError):
    """An edit, delete or payment named a record that does not exist."""

    def __init__(self, kind: str, record_id: UUID):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class PartialPostingFailure(EngineError):
    """
    The payout transaction was written but not every session got marked.

    Retrying the same posting resumes marking against `transaction_id`
    instead of creating a second payout.
    """

    def __init__(
        self,
        transaction_id: UUID,
        marked: list[UUID],
        unmarked: list[UUID],
        cause: Optional[Exception] = None,
    ):
        self.transaction_id = transaction_id
        self.marked = marked
        self.unmarked = unmarked
        self.cause = cause
        super().__init__(
            f"Payout {transaction_id} written but {len(unmarked)} of "
            f"{len(marked) + len(unmarked)} sessions were not marked: {cause}"
        )
