"""Batch-level reduction of per-screen scorecards."""

from __future__ import annotations

from typing import Sequence

from ..logging import get_logger
from ..models import BatchSummary, ScreenScorecard, Status


class BatchSummarizer:
    """Counts screens by overall status and tallies critical failures.

    A screen is a critical failure when structural, functional, accessibility
    or performance failed. A screen that fails on visual drift alone still
    counts as FAIL but not as critical.
    """

    def __init__(self) -> None:
        self.logger = get_logger("scoring.summary")

    def summarize(self, scorecards: Sequence[ScreenScorecard]) -> BatchSummary:
        summary = BatchSummary(total=len(scorecards))
        for card in scorecards:
            if card.overall is Status.PASS:
                summary.passed += 1
            elif card.overall is Status.NEEDS_REVIEW:
                summary.needs_review += 1
            else:
                summary.failed += 1
            if card.is_critical_failure:
                summary.critical_failures += 1
        self.logger.info(
            "Batch summary: %d total, %d pass, %d needs review, %d fail, %d critical",
            summary.total,
            summary.passed,
            summary.needs_review,
            summary.failed,
            summary.critical_failures,
        )
        return summary


__all__ = ["BatchSummarizer"]
