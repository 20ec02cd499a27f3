"""Page-by-page list fetchers for pull requests and issues.

Pagination stops on the first of: an empty page, a page shorter than the
requested page size, or the ``max_results`` cap being reached. Pages are
requested strictly in order and never twice.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from functools import partial
from typing import TYPE_CHECKING, Any

import structlog

from repo_intake.normalizer import normalize

if TYPE_CHECKING:
    from repo_intake.client import GitHubRestClient
    from repo_intake.governor import CallGovernor
    from repo_intake.models import Document, FetchOptions

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

RawItem = Mapping[str, Any]
PageFetcher = Callable[[int], Awaitable[list[dict[str, Any]]]]


async def paginate(
    fetch_page: PageFetcher,
    normalize_item: Callable[[RawItem], Document],
    *,
    per_page: int,
    max_results: int | None = None,
    skip_item: Callable[[RawItem], bool] | None = None,
) -> list[Document]:
    """Collect normalized documents from a paged list endpoint.

    Args:
        fetch_page: Returns the raw items of a 1-based page number.
        normalize_item: Converts one accepted raw item into a Document.
        per_page: Page size that was requested; a shorter page is the last.
        max_results: Stop once this many documents were produced.
        skip_item: Predicate for items to drop; skipped items do not
            count toward ``max_results``.

    Returns:
        Documents in upstream arrival order.
    """
    documents: list[Document] = []
    page = 1

    while True:
        items = await fetch_page(page)
        if not items:
            break

        for item in items:
            if max_results is not None and len(documents) >= max_results:
                return documents
            if skip_item is not None and skip_item(item):
                continue
            documents.append(normalize_item(item))

        logger.debug("page_processed", page=page, items=len(items), total=len(documents))

        if len(items) < per_page:
            break
        if max_results is not None and len(documents) >= max_results:
            break
        page += 1

    return documents


def _is_pull_request(item: RawItem) -> bool:
    # The issues endpoint also lists pull requests, tagged with this key.
    return item.get("pull_request") is not None


async def fetch_pull_requests(
    client: GitHubRestClient,
    governor: CallGovernor,
    options: FetchOptions,
) -> list[Document]:
    """Fetch and normalize pull requests for the client's repository."""
    repository = client.repository.full_name

    async def _fetch_page(page: int) -> list[dict[str, Any]]:
        return await governor.execute(
            partial(client.list_pull_requests, options.state, options.per_page, page)
        )

    return await paginate(
        _fetch_page,
        partial(normalize, "pull_request", repository=repository),
        per_page=options.per_page,
        max_results=options.max_results,
    )


async def fetch_issues(
    client: GitHubRestClient,
    governor: CallGovernor,
    options: FetchOptions,
) -> list[Document]:
    """Fetch and normalize issues, excluding pull requests."""
    repository = client.repository.full_name

    async def _fetch_page(page: int) -> list[dict[str, Any]]:
        return await governor.execute(
            partial(client.list_issues, options.state, options.per_page, page)
        )

    return await paginate(
        _fetch_page,
        partial(normalize, "issue", repository=repository),
        per_page=options.per_page,
        max_results=options.max_results,
        skip_item=_is_pull_request,
    )
