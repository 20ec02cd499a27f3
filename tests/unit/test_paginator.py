"""Unit tests for repo_intake.paginator - page traversal and stop rules."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
import respx
from httpx import Response

from repo_intake.client import GitHubRestClient
from repo_intake.governor import CallGovernor
from repo_intake.models import (
    Document,
    FetchOptions,
    PullRequestMetadata,
    RepositoryRef,
)
from repo_intake.paginator import fetch_issues, fetch_pull_requests, paginate

REPO_API = "https://api.github.com/repos/octo/demo"
REF = RepositoryRef(owner="octo", name="demo")


def _pages(*sizes: int) -> tuple[Callable[[int], Any], list[int]]:
    """Fake page fetcher serving pages of the given sizes, then empty pages."""
    requested: list[int] = []

    async def fetch_page(page: int) -> list[dict[str, Any]]:
        requested.append(page)
        size = sizes[page - 1] if page <= len(sizes) else 0
        start = sum(sizes[: page - 1])
        return [{"number": start + i + 1} for i in range(size)]

    return fetch_page, requested


def _to_document(item: Any) -> Document:
    return Document(
        content=f"# {item['number']}",
        metadata=PullRequestMetadata(number=item["number"], repository="octo/demo"),
    )


def _numbers(documents: list[Document]) -> list[int]:
    return [doc.metadata.number for doc in documents]  # type: ignore[union-attr]


class TestPaginate:
    """paginate stops on empty page, short page or cap."""

    @pytest.mark.asyncio
    async def test_stops_on_empty_first_page(self) -> None:
        fetch_page, requested = _pages()
        docs = await paginate(fetch_page, _to_document, per_page=2)
        assert docs == []
        assert requested == [1]

    @pytest.mark.asyncio
    async def test_stops_on_short_page(self) -> None:
        fetch_page, requested = _pages(2, 2, 1, 2)
        docs = await paginate(fetch_page, _to_document, per_page=2)
        assert _numbers(docs) == [1, 2, 3, 4, 5]
        assert requested == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_full_pages_then_empty(self) -> None:
        fetch_page, requested = _pages(2, 2)
        docs = await paginate(fetch_page, _to_document, per_page=2)
        assert _numbers(docs) == [1, 2, 3, 4]
        assert requested == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_cap_truncates_mid_page(self) -> None:
        fetch_page, requested = _pages(3, 3, 3)
        docs = await paginate(fetch_page, _to_document, per_page=3, max_results=4)
        assert _numbers(docs) == [1, 2, 3, 4]
        assert requested == [1, 2]

    @pytest.mark.asyncio
    async def test_cap_at_page_boundary_fetches_no_more(self) -> None:
        fetch_page, requested = _pages(2, 2, 2)
        docs = await paginate(fetch_page, _to_document, per_page=2, max_results=2)
        assert _numbers(docs) == [1, 2]
        assert requested == [1]

    @pytest.mark.asyncio
    async def test_skipped_items_do_not_count_toward_cap(self) -> None:
        fetch_page, requested = _pages(3, 3)
        docs = await paginate(
            fetch_page,
            _to_document,
            per_page=3,
            max_results=3,
            skip_item=lambda item: item["number"] % 2 == 0,
        )
        assert _numbers(docs) == [1, 3, 5]
        assert requested == [1, 2]

    @pytest.mark.asyncio
    async def test_short_page_detected_before_skipping(self) -> None:
        fetch_page, requested = _pages(3, 3)
        docs = await paginate(
            fetch_page, _to_document, per_page=3, skip_item=lambda item: True
        )
        assert docs == []
        assert requested == [1, 2, 3]


def _page_side_effect(pages: dict[int, list[dict[str, Any]]]) -> Callable[..., Response]:
    def _respond(request: Any) -> Response:
        page = int(request.url.params["page"])
        return Response(200, json=pages.get(page, []))

    return _respond


class TestFetchPullRequests:
    """fetch_pull_requests drives the pulls endpoint through the governor."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_collects_pages_in_order(
        self, raw_pull_request: Callable[..., dict[str, Any]], fast_governor: CallGovernor
    ) -> None:
        route = respx.get(f"{REPO_API}/pulls").mock(
            side_effect=_page_side_effect(
                {
                    1: [raw_pull_request(1), raw_pull_request(2)],
                    2: [raw_pull_request(3)],
                }
            )
        )
        options = FetchOptions(per_page=2, state="open")
        async with GitHubRestClient.from_options(REF, options) as client:
            docs = await fetch_pull_requests(client, fast_governor, options)

        assert _numbers(docs) == [1, 2, 3]
        assert all(doc.kind == "pull_request" for doc in docs)
        assert route.call_count == 2
        assert route.calls[0].request.url.params["state"] == "open"

    @pytest.mark.asyncio
    @respx.mock
    async def test_transient_page_failure_retried(
        self, raw_pull_request: Callable[..., dict[str, Any]], fast_governor: CallGovernor
    ) -> None:
        route = respx.get(f"{REPO_API}/pulls").mock(
            side_effect=[
                Response(502),
                Response(200, json=[raw_pull_request(1)]),
            ]
        )
        options = FetchOptions(per_page=5)
        async with GitHubRestClient.from_options(REF, options) as client:
            docs = await fetch_pull_requests(client, fast_governor, options)

        assert _numbers(docs) == [1]
        assert route.call_count == 2


class TestFetchIssues:
    """fetch_issues drops pull requests listed by the issues endpoint."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_pull_requests_excluded_and_not_counted(
        self, raw_issue: Callable[..., dict[str, Any]], fast_governor: CallGovernor
    ) -> None:
        pr_like = {"pull_request": {"url": "https://api.github.com/pulls/2"}}
        respx.get(f"{REPO_API}/issues").mock(
            side_effect=_page_side_effect(
                {
                    1: [raw_issue(1), raw_issue(2, **pr_like)],
                    2: [raw_issue(3), raw_issue(4)],
                }
            )
        )
        options = FetchOptions(per_page=2, max_results=2)
        async with GitHubRestClient.from_options(REF, options) as client:
            docs = await fetch_issues(client, fast_governor, options)

        assert _numbers(docs) == [1, 3]
        assert all(doc.kind == "issue" for doc in docs)

    @pytest.mark.asyncio
    @respx.mock
    async def test_null_pull_request_key_is_an_issue(
        self, raw_issue: Callable[..., dict[str, Any]], fast_governor: CallGovernor
    ) -> None:
        respx.get(f"{REPO_API}/issues").mock(
            return_value=Response(200, json=[raw_issue(7, pull_request=None)])
        )
        options = FetchOptions(per_page=5)
        async with GitHubRestClient.from_options(REF, options) as client:
            docs = await fetch_issues(client, fast_governor, options)
        assert _numbers(docs) == [7]
