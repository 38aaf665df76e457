"""Acceptance policy evaluation for one batch summary."""

from __future__ import annotations

from ..config import RemediationPolicy
from ..models import BatchSummary, Decision


def evaluate_policy(summary: BatchSummary, policy: RemediationPolicy) -> Decision:
    """Return ACCEPT when the batch satisfies ``policy``, otherwise RETRY.

    Strict mode requires every screen to PASS. Threshold mode compares pass and
    needs-review rates against the configured limits and, when required, demands
    zero critical failures. An empty batch counts as a denominator of one.
    """
    if policy.strict_pass_required:
        accepted = summary.failed == 0 and summary.needs_review == 0
    else:
        accepted = (
            summary.pass_rate >= policy.min_pass_rate
            and summary.needs_review_rate <= policy.max_needs_review_rate
            and (not policy.require_zero_critical_failures or summary.critical_failures == 0)
        )
    return Decision.ACCEPT if accepted else Decision.RETRY


__all__ = ["evaluate_policy"]
