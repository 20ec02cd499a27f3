"""Unit tests for repo_intake.analytics.intake - totals and recency."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from repo_intake.analytics import summarize
from repo_intake.models import Document, IntakeConfig

REFERENCE = datetime(2024, 5, 20, 12, 0, tzinfo=UTC)

DocFactory = Callable[..., Document]


@pytest.fixture()
def pull_requests(pr_document: DocFactory) -> list[Document]:
    return [
        pr_document(1, state="open", created_at="2024-05-01T10:00:00Z",
                    updated_at="2024-05-02T10:00:00Z"),
        pr_document(2, state="closed", created_at="2024-04-20T00:00:00Z",
                    updated_at="2024-05-10T00:00:00Z"),
        pr_document(3, state="open", created_at="2024-05-05T00:00:00Z",
                    updated_at="2024-05-06T00:00:00Z"),
    ]


@pytest.fixture()
def issues(issue_document: DocFactory) -> list[Document]:
    return [
        issue_document(10, state="open", updated_at="2024-05-03T10:00:00Z"),
        issue_document(11, state="closed", updated_at="2024-05-12T12:00:00Z"),
    ]


class TestTotals:
    """Open/closed counts per kind."""

    def test_counts(self, pull_requests: list[Document], issues: list[Document]) -> None:
        summary = summarize(pull_requests, issues, IntakeConfig(reference_date=REFERENCE))
        assert summary.repository == "octo/demo"
        assert summary.totals.pull_requests.model_dump() == {"total": 3, "open": 2, "closed": 1}
        assert summary.totals.issues.model_dump() == {"total": 2, "open": 1, "closed": 1}

    def test_state_comparison_is_case_insensitive(self, pr_document: DocFactory) -> None:
        summary = summarize([pr_document(1, state="OPEN")], [])
        assert summary.totals.pull_requests.open == 1

    def test_unknown_state_counts_as_closed(self, pr_document: DocFactory) -> None:
        summary = summarize([pr_document(1, state=None)], [])
        assert summary.totals.pull_requests.closed == 1

    def test_repository_falls_back_to_issues(self, issues: list[Document]) -> None:
        assert summarize([], issues).repository == "octo/demo"


class TestRecency:
    """Latest activity and the recency window."""

    def test_recency_signals(self, pull_requests: list[Document], issues: list[Document]) -> None:
        summary = summarize(pull_requests, issues, IntakeConfig(reference_date=REFERENCE))
        recency = summary.recency
        assert recency.last_open_pr_created_at == datetime(2024, 5, 5, tzinfo=UTC)
        assert recency.most_recent_activity == datetime(2024, 5, 12, 12, 0, tzinfo=UTC)
        assert recency.days_since_last_activity == 8
        assert recency.recent_activity_within_window is True

    def test_window_boundary_is_inclusive(
        self, pull_requests: list[Document], issues: list[Document]
    ) -> None:
        inside = summarize(
            pull_requests, issues,
            IntakeConfig(reference_date=REFERENCE, recency_window_days=8),
        )
        outside = summarize(
            pull_requests, issues,
            IntakeConfig(reference_date=REFERENCE, recency_window_days=7),
        )
        assert inside.recency.recent_activity_within_window is True
        assert outside.recency.recent_activity_within_window is False

    def test_partial_days_are_floored(self, pr_document: DocFactory) -> None:
        summary = summarize(
            [pr_document(1, updated_at="2024-05-13T13:00:00Z")],
            [],
            IntakeConfig(reference_date=REFERENCE),
        )
        assert summary.recency.days_since_last_activity == 6

    def test_future_activity_gives_negative_days(self, pr_document: DocFactory) -> None:
        summary = summarize(
            [pr_document(1, updated_at="2024-05-25T12:00:00Z")],
            [],
            IntakeConfig(reference_date=REFERENCE),
        )
        assert summary.recency.days_since_last_activity == -5
        assert summary.recency.recent_activity_within_window is True

    def test_no_open_pull_requests(self, pr_document: DocFactory) -> None:
        summary = summarize([pr_document(1, state="closed")], [])
        assert summary.recency.last_open_pr_created_at is None

    def test_unparseable_timestamps_ignored(self, pr_document: DocFactory) -> None:
        summary = summarize(
            [pr_document(1, updated_at="yesterday"), pr_document(2, updated_at="2024-05-19T12:00:00Z")],
            [],
            IntakeConfig(reference_date=REFERENCE),
        )
        assert summary.recency.days_since_last_activity == 1


def test_empty_input() -> None:
    summary = summarize([], [])
    assert summary.repository is None
    assert summary.totals.pull_requests.total == 0
    assert summary.totals.issues.total == 0
    assert summary.recency.last_open_pr_created_at is None
    assert summary.recency.most_recent_activity is None
    assert summary.recency.days_since_last_activity is None
    assert summary.recency.recent_activity_within_window is False


def test_accepts_snapshot_mappings(pull_requests: list[Document]) -> None:
    payload = [doc.model_dump(mode="json") for doc in pull_requests]
    summary = summarize(payload, [], IntakeConfig(reference_date=REFERENCE))
    assert summary.totals.pull_requests.total == 3
