"""
Submission outcome models
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

CANCELLED_MESSAGE = "Submission was cancelled"


@dataclass
class SubmissionOutcome:
    """Result of one batch; indices refer to the batch's row list"""
    ok: bool
    submitted: List[int] = field(default_factory=list)
    errors: List[Tuple[int, str]] = field(default_factory=list)
    cancelled: bool = False

    @classmethod
    def all_failed(cls, row_count: int, message: str) -> "SubmissionOutcome":
        return cls(ok=False, errors=[(index, message) for index in range(row_count)])

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "submitted": list(self.submitted),
            "errors": [[index, message] for index, message in self.errors],
        }


@dataclass
class QuarterResult:
    quarter_id: str
    ok: bool
    submitted_ids: List[int] = field(default_factory=list)
    failed_ids: List[int] = field(default_factory=list)


@dataclass
class AggregateResult:
    """Unified outcome of one top-level submission call"""
    ok: bool
    submitted_ids: List[int] = field(default_factory=list)
    removed_ids: List[int] = field(default_factory=list)
    total_processed: int = 0
    error: Optional[str] = None
    cancelled: bool = False

    @property
    def success_count(self) -> int:
        return len(self.submitted_ids)

    @property
    def removed_count(self) -> int:
        return len(self.removed_ids)

    def to_dict(self) -> dict:
        data = {
            "ok": self.ok,
            "submittedIds": list(self.submitted_ids),
            "removedIds": list(self.removed_ids),
            "totalProcessed": self.total_processed,
            "successCount": self.success_count,
            "removedCount": self.removed_count,
        }
        if self.error:
            data["error"] = self.error
        if self.cancelled:
            data["cancelled"] = True
        return data
