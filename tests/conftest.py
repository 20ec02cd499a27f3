"""Shared pytest fixtures for the repo-intake test suite."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

import pytest
import structlog

from repo_intake.governor import CallGovernor
from repo_intake.models import Document
from repo_intake.normalizer import normalize

API = "https://api.github.com"
REPO = "octo/demo"
REPO_API = f"{API}/repos/{REPO}"

RawFactory = Callable[..., dict[str, Any]]


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Reset structlog and stdlib root handlers around every test.

    The CLI installs a stderr handler bound to the runner's stream, which
    is closed once the invocation ends.
    """
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Raw GitHub REST payloads
# ---------------------------------------------------------------------------


@pytest.fixture()
def raw_pull_request() -> RawFactory:
    """Return a factory for pull request listing items."""

    def _make(number: int = 1, **overrides: Any) -> dict[str, Any]:
        item: dict[str, Any] = {
            "number": number,
            "title": f"Change {number}",
            "state": "open",
            "user": {"login": "alice"},
            "body": f"Body of change {number}",
            "created_at": "2024-05-01T10:00:00Z",
            "updated_at": "2024-05-02T10:00:00Z",
            "merged_at": None,
            "html_url": f"https://github.com/{REPO}/pull/{number}",
            "base": {"ref": "main"},
            "head": {"ref": f"feature-{number}"},
        }
        item.update(overrides)
        return item

    return _make


@pytest.fixture()
def raw_issue() -> RawFactory:
    """Return a factory for issue listing items."""

    def _make(number: int = 1, **overrides: Any) -> dict[str, Any]:
        item: dict[str, Any] = {
            "number": number,
            "title": f"Problem {number}",
            "state": "open",
            "user": {"login": "bob"},
            "body": f"Details of problem {number}",
            "labels": [],
            "comments": 0,
            "created_at": "2024-05-01T10:00:00Z",
            "updated_at": "2024-05-03T10:00:00Z",
            "closed_at": None,
            "html_url": f"https://github.com/{REPO}/issues/{number}",
        }
        item.update(overrides)
        return item

    return _make


@pytest.fixture()
def content_entry() -> RawFactory:
    """Return a factory for repository contents entries."""

    def _make(path: str, /, entry_type: str = "file", **overrides: Any) -> dict[str, Any]:
        name = path.rsplit("/", 1)[-1]
        item: dict[str, Any] = {
            "name": name,
            "path": path,
            "type": entry_type,
            "size": 42 if entry_type == "file" else 0,
            "sha": f"sha-{name}",
            "html_url": f"https://github.com/{REPO}/blob/main/{path}",
            "download_url": (
                f"https://raw.githubusercontent.com/{REPO}/main/{path}"
                if entry_type == "file"
                else None
            ),
        }
        item.update(overrides)
        return item

    return _make


# ---------------------------------------------------------------------------
# Normalized documents
# ---------------------------------------------------------------------------


@pytest.fixture()
def pr_document(raw_pull_request: RawFactory) -> Callable[..., Document]:
    """Return a factory building normalized pull request documents."""

    def _make(number: int = 1, **overrides: Any) -> Document:
        return normalize(
            "pull_request", raw_pull_request(number, **overrides), repository=REPO
        )

    return _make


@pytest.fixture()
def issue_document(raw_issue: RawFactory) -> Callable[..., Document]:
    """Return a factory building normalized issue documents.

    ``labels`` may be given as plain names.
    """

    def _make(number: int = 1, labels: list[str] | None = None, **overrides: Any) -> Document:
        if labels is not None:
            overrides["labels"] = [{"name": name} for name in labels]
        return normalize("issue", raw_issue(number, **overrides), repository=REPO)

    return _make


# ---------------------------------------------------------------------------
# Governor
# ---------------------------------------------------------------------------


@pytest.fixture()
def fast_governor() -> CallGovernor:
    """Governor with the default budget but no backoff delay."""
    return CallGovernor(max_concurrency=2, max_retries=2, backoff_initial_seconds=0.0)
