"""Issue triage snapshot: open issues bucketed by label precedence."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from repo_intake.analytics.helpers import extract_title, is_open
from repo_intake.models import (
    Document,
    IssueMetadata,
    IssueSummary,
    TriageBuckets,
    TriageConfig,
    TriageSnapshot,
    TriageTotals,
    coerce_documents,
)

BLOCKER_ACTION = "Prioritise the blocker issues first to stabilise the project."
NO_BLOCKER_ACTION = (
    "No critical blockers detected. "
    "Consider pairing newcomers with onboarding-friendly issues."
)


def _matches(labels: set[str], keywords: list[str]) -> bool:
    return any(keyword.lower() in labels for keyword in keywords)


def _summary(document: Document, metadata: IssueMetadata) -> IssueSummary:
    return IssueSummary(
        number=metadata.number,
        title=extract_title(document),
        labels=list(metadata.labels),
        url=metadata.source,
        last_updated_at=metadata.updated_at,
    )


def triage(
    issues: Iterable[Document | Mapping[str, Any]],
    config: TriageConfig | None = None,
) -> TriageSnapshot:
    """Place every open issue into exactly one bucket.

    Buckets are tried in order blockers, onboarding, security and the
    first match wins; unmatched open issues land in ``other_open``.
    Closed issues are dropped. Label comparison is case-insensitive.
    """
    config = config or TriageConfig()
    buckets = TriageBuckets()

    precedence = (
        (config.blocker_labels, buckets.blockers),
        (config.onboarding_labels, buckets.onboarding),
        (config.security_labels, buckets.security),
    )

    for document in coerce_documents(issues):
        metadata = document.metadata
        if not isinstance(metadata, IssueMetadata) or not is_open(document):
            continue

        labels = {label.lower() for label in metadata.labels}
        summary = _summary(document, metadata)
        for keywords, bucket in precedence:
            if _matches(labels, keywords):
                bucket.append(summary)
                break
        else:
            buckets.other_open.append(summary)

    totals = TriageTotals(
        open_issues=(
            len(buckets.blockers)
            + len(buckets.onboarding)
            + len(buckets.security)
            + len(buckets.other_open)
        ),
        blockers=len(buckets.blockers),
        onboarding=len(buckets.onboarding),
        security=len(buckets.security),
        other_open=len(buckets.other_open),
    )
    return TriageSnapshot(
        totals=totals,
        buckets=buckets,
        suggested_action=BLOCKER_ACTION if buckets.blockers else NO_BLOCKER_ACTION,
    )
