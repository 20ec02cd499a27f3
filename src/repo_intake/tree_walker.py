"""Depth-first walk of a repository tree collecting markdown files.

The walk keeps an explicit stack of directory listings instead of
recursing, so tree depth is bounded by memory rather than the call stack.
Entries are visited in listing order; a subdirectory is listed only when
its entry is reached and is fully walked before the next sibling. Once
``max_results`` documents exist, nothing further is listed or downloaded.
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import partial
from typing import TYPE_CHECKING, Any

import structlog

from repo_intake.exceptions import UpstreamPayloadError
from repo_intake.normalizer import normalize

if TYPE_CHECKING:
    from repo_intake.client import GitHubRestClient
    from repo_intake.governor import CallGovernor
    from repo_intake.models import Document

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_MARKDOWN_SUFFIX = ".md"


def _is_markdown_file(entry: dict[str, Any]) -> bool:
    return entry.get("type") == "file" and str(entry.get("name", "")).endswith(
        _MARKDOWN_SUFFIX
    )


def _entry_field(entry: dict[str, Any], key: str) -> str:
    value = entry.get(key)
    if not value:
        raise UpstreamPayloadError(f"Contents entry is missing {key!r}: {entry.get('name')!r}")
    return str(value)


async def collect_markdown(
    client: GitHubRestClient,
    governor: CallGovernor,
    *,
    branch: str = "main",
    max_results: int | None = None,
    root_path: str = "",
) -> list[Document]:
    """Collect every ``.md`` file under ``root_path`` as a Document.

    Args:
        client: REST client bound to the target repository.
        governor: Governor wrapping every listing and download call.
        branch: Branch (or other git ref) to read.
        max_results: Stop as soon as this many documents were produced.
        root_path: Directory to start from; ``""`` is the repository root.

    Returns:
        Markdown documents in depth-first listing order.
    """
    repository = client.repository.full_name
    documents: list[Document] = []

    root = await governor.execute(partial(client.list_directory, root_path, branch))
    stack: list[Iterator[dict[str, Any]]] = [iter(root)]

    while stack:
        entry = next(stack[-1], None)
        if entry is None:
            stack.pop()
            continue

        if max_results is not None and len(documents) >= max_results:
            logger.debug("markdown_cap_reached", max_results=max_results)
            break

        if _is_markdown_file(entry):
            text = await governor.execute(
                partial(client.download_text, _entry_field(entry, "download_url"))
            )
            documents.append(
                normalize(
                    "markdown_file",
                    entry,
                    repository=repository,
                    branch=branch,
                    body=text,
                )
            )
        elif entry.get("type") == "dir":
            path = _entry_field(entry, "path")
            listing = await governor.execute(partial(client.list_directory, path, branch))
            logger.debug("directory_listed", path=path, entries=len(listing))
            stack.append(iter(listing))

    return documents
