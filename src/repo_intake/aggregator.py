"""Run the pull request, issue and markdown pipelines and join their output.

The three pipelines share one ``CallGovernor`` and one REST client, both
scoped to a single ``ingest`` call. They run concurrently; the first
failure aborts the whole call and no partial ``AggregateResult`` is
returned.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from repo_intake.client import GitHubRestClient
from repo_intake.governor import CallGovernor
from repo_intake.logging import pipeline_logging_context
from repo_intake.models import AggregateResult, FetchOptions, RepositoryRef
from repo_intake.paginator import fetch_issues, fetch_pull_requests
from repo_intake.tree_walker import collect_markdown

if TYPE_CHECKING:
    import httpx

    from repo_intake.config import GovernorSettings
    from repo_intake.models import Document

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_PIPELINES = ("pull_requests", "issues", "markdown_files")


async def _run_pipeline(
    name: str,
    repository: str,
    fetch: Callable[[], Awaitable[list[Document]]],
) -> list[Document]:
    with pipeline_logging_context(name, repository=repository) as log:
        documents = await fetch()
        log.info("pipeline_complete", documents=len(documents))
        return documents


async def _join_fail_fast(tasks: list[asyncio.Task[list[Document]]]) -> None:
    """Wait for all tasks; on the first failure cancel the rest and re-raise it.

    When several tasks have already failed, the earliest one in ``tasks``
    order wins. The exception is re-raised unchanged.

    Siblings are cancelled rather than left running in the background:
    they share the HTTP client that ``ingest`` closes on exit, so an
    abandoned sibling could only fail against a closed client.
    """
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)

    for task in tasks:
        if task.cancelled():
            continue
        exc = task.exception()
        if exc is not None:
            raise exc


async def ingest(
    source: RepositoryRef | str,
    options: FetchOptions | None = None,
    *,
    governor_settings: GovernorSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> AggregateResult:
    """Fetch pull requests, issues and markdown files for one repository.

    Args:
        source: A ``RepositoryRef``, a GitHub URL or an ``owner/name`` string.
        options: Fetch options; defaults apply when omitted.
        governor_settings: Concurrency and retry budget for this call.
        http_client: Optional externally managed ``httpx.AsyncClient``.
        timeout: Per-request timeout when the client is created here.

    Returns:
        The joined result of the three pipelines.

    Raises:
        InvalidRepositoryReferenceError: If ``source`` cannot be parsed.
            Raised before any request is issued.
        Exception: The first pipeline failure, unchanged.
    """
    ref = source if isinstance(source, RepositoryRef) else RepositoryRef.parse(source)
    options = options or FetchOptions()
    governor = (
        CallGovernor.from_settings(governor_settings)
        if governor_settings is not None
        else CallGovernor()
    )
    repository = ref.full_name

    logger.info(
        "ingest_start",
        repository=repository,
        state=options.state,
        per_page=options.per_page,
        max_results=options.max_results,
        branch=options.branch,
    )

    async with GitHubRestClient.from_options(
        ref, options, timeout=timeout, client=http_client
    ) as client:
        fetchers: dict[str, Callable[[], Awaitable[list[Document]]]] = {
            "pull_requests": lambda: fetch_pull_requests(client, governor, options),
            "issues": lambda: fetch_issues(client, governor, options),
            "markdown_files": lambda: collect_markdown(
                client,
                governor,
                branch=options.branch,
                max_results=options.max_results,
            ),
        }
        tasks = [
            asyncio.create_task(
                _run_pipeline(name, repository, fetchers[name]), name=f"ingest:{name}"
            )
            for name in _PIPELINES
        ]
        await _join_fail_fast(tasks)

    pull_requests, issues, markdown_files = (task.result() for task in tasks)
    result = AggregateResult(
        pull_requests=pull_requests,
        issues=issues,
        markdown_files=markdown_files,
    )
    logger.info(
        "ingest_complete",
        repository=repository,
        pull_requests=len(pull_requests),
        issues=len(issues),
        markdown_files=len(markdown_files),
    )
    return result


def ingest_sync(
    source: RepositoryRef | str,
    options: FetchOptions | None = None,
    *,
    governor_settings: GovernorSettings | None = None,
    timeout: float = 30.0,
) -> AggregateResult:
    """Blocking wrapper around :func:`ingest` for synchronous callers."""
    return asyncio.run(
        ingest(source, options, governor_settings=governor_settings, timeout=timeout)
    )
