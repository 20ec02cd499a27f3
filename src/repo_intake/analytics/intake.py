"""Intake summary: open/closed totals and recency signals after an import."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from repo_intake.analytics.helpers import (
    created_at,
    days_between,
    is_open,
    latest,
    resolve_reference_date,
    updated_at,
)
from repo_intake.models import (
    Document,
    IntakeConfig,
    IntakeRecency,
    IntakeSummary,
    IntakeTotals,
    StateTotals,
    coerce_documents,
)


def _state_totals(documents: list[Document]) -> StateTotals:
    open_count = sum(1 for document in documents if is_open(document))
    return StateTotals(
        total=len(documents),
        open=open_count,
        closed=len(documents) - open_count,
    )


def _repository(pull_requests: list[Document], issues: list[Document]) -> str | None:
    for documents in (pull_requests, issues):
        if documents and documents[0].metadata.repository:
            return documents[0].metadata.repository
    return None


def summarize(
    pull_requests: Iterable[Document | Mapping[str, Any]],
    issues: Iterable[Document | Mapping[str, Any]],
    config: IntakeConfig | None = None,
) -> IntakeSummary:
    """Build the intake summary for a freshly imported repository.

    Args:
        pull_requests: Pull request documents.
        issues: Issue documents.
        config: Recency window and reference date; defaults to a 14-day
            window ending now.

    Returns:
        Totals per kind plus last-activity recency signals.
    """
    config = config or IntakeConfig()
    reference = resolve_reference_date(config.reference_date)
    prs = coerce_documents(pull_requests)
    issue_docs = coerce_documents(issues)

    last_open_pr_created = latest([created_at(pr) for pr in prs if is_open(pr)])
    most_recent_activity = latest(
        [
            latest([updated_at(pr) for pr in prs]),
            latest([updated_at(issue) for issue in issue_docs]),
        ]
    )

    days_since: int | None = None
    within_window = False
    if most_recent_activity is not None:
        days_since = days_between(most_recent_activity, reference)
        within_window = days_since <= config.recency_window_days

    return IntakeSummary(
        repository=_repository(prs, issue_docs),
        totals=IntakeTotals(
            pull_requests=_state_totals(prs),
            issues=_state_totals(issue_docs),
        ),
        recency=IntakeRecency(
            last_open_pr_created_at=last_open_pr_created,
            most_recent_activity=most_recent_activity,
            days_since_last_activity=days_since,
            recent_activity_within_window=within_window,
        ),
    )
