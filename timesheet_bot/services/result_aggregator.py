"""
Merges per-quarter outcomes into one AggregateResult
"""

import logging
from typing import Iterable, List, Optional

from ..models.results import CANCELLED_MESSAGE, AggregateResult, QuarterResult


class ResultAggregator:
    """Accumulates quarter results in processing order"""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.quarters: List[QuarterResult] = []
        self.cancelled = False
        self.cancel_reason: Optional[str] = None

    def add_quarter(self, result: QuarterResult):
        self.quarters.append(result)
        self.logger.debug(f"{result.quarter_id}: ok={result.ok} submitted={len(result.submitted_ids)} "
                          f"failed={len(result.failed_ids)}")

    def add_routing_failure(self, quarter_id: str, ids: Iterable[Optional[int]]):
        """Record a group with no matching quarter definition; all its ids fail"""
        failed = [row_id for row_id in ids if row_id is not None]
        self.add_quarter(QuarterResult(quarter_id=quarter_id, ok=False, failed_ids=failed))

    def mark_cancelled(self, reason: Optional[str] = None):
        self.cancelled = True
        self.cancel_reason = reason

    def build(self, total_processed: int, error: Optional[str] = None) -> AggregateResult:
        submitted: List[int] = []
        removed: List[int] = []
        for quarter in self.quarters:
            submitted.extend(quarter.submitted_ids)
            removed.extend(quarter.failed_ids)

        ok = all(quarter.ok for quarter in self.quarters) and not self.cancelled
        if self.cancelled:
            error = CANCELLED_MESSAGE
        elif error is None and not ok:
            failed_quarters = [quarter.quarter_id for quarter in self.quarters if not quarter.ok]
            error = f"Some rows failed in: {', '.join(failed_quarters)}"

        return AggregateResult(
            ok=ok,
            submitted_ids=submitted,
            removed_ids=removed,
            total_processed=total_processed,
            error=error,
            cancelled=self.cancelled,
        )
