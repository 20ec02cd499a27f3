"""Pull request attention insights: stale reviews and active contributors."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from repo_intake.analytics.helpers import (
    days_between,
    extract_title,
    is_open,
    resolve_reference_date,
    updated_at,
)
from repo_intake.models import (
    AttentionConfig,
    AttentionInsights,
    AttentionTotals,
    ContributorCount,
    Document,
    IssueMetadata,
    PullRequestMetadata,
    StalePullRequest,
    coerce_documents,
)

STALE_ACTION = "Reach out to reviewers on the stale pull requests to unblock merges."
NO_STALE_ACTION = "No stale pull requests detected. Keep encouraging these contributors!"

_UNKNOWN_AUTHOR = "unknown"


def _author(document: Document) -> str:
    metadata = document.metadata
    if isinstance(metadata, PullRequestMetadata | IssueMetadata) and metadata.author:
        return metadata.author
    return _UNKNOWN_AUTHOR


def analyze_attention(
    pull_requests: Iterable[Document | Mapping[str, Any]],
    config: AttentionConfig | None = None,
) -> AttentionInsights:
    """Highlight stale open pull requests and the most active authors.

    Contributors are ranked by pull request count; ties keep the order in
    which authors were first seen. A pull request is stale when it is open
    and its last update is at least ``stale_after_days`` old.
    """
    config = config or AttentionConfig()
    reference = resolve_reference_date(config.reference_date)
    prs = coerce_documents(pull_requests)

    counts: dict[str, int] = {}
    stale: list[StalePullRequest] = []

    for pr in prs:
        author = _author(pr)
        counts[author] = counts.get(author, 0) + 1

        last_updated = updated_at(pr)
        if last_updated is None or not is_open(pr):
            continue
        days_since_update = days_between(last_updated, reference)
        if days_since_update >= config.stale_after_days:
            stale.append(
                StalePullRequest(
                    number=pr.metadata.number,
                    title=extract_title(pr),
                    last_updated_at=last_updated,
                    days_since_update=days_since_update,
                )
            )

    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    top_contributors = [
        ContributorCount(author=author, pull_request_count=count)
        for author, count in ranked[: config.top_contributor_count]
    ]

    return AttentionInsights(
        totals=AttentionTotals(pull_requests=len(prs), stale=len(stale)),
        stale_pull_requests=stale,
        top_contributors=top_contributors,
        suggested_action=STALE_ACTION if stale else NO_STALE_ACTION,
    )
