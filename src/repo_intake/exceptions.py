"""Centralized exception hierarchy for the repo-intake package.

All domain-specific exceptions inherit from ``RepoIntakeError`` so
callers can catch the entire family with a single ``except`` clause.
"""

from __future__ import annotations


class RepoIntakeError(Exception):
    """Base exception for all repo-intake errors."""


# ---------------------------------------------------------------------------
# Repository reference errors
# ---------------------------------------------------------------------------


class InvalidRepositoryReferenceError(RepoIntakeError, ValueError):
    """Raised when a repository URL or ``owner/name`` string cannot be parsed."""


# ---------------------------------------------------------------------------
# Upstream errors
# ---------------------------------------------------------------------------


class UpstreamError(RepoIntakeError):
    """Base exception for failures reported by the remote repository host."""


class UpstreamStatusError(UpstreamError):
    """Raised when the upstream API answers with a non-success status."""

    def __init__(self, resource: str, status_code: int, reason: str = "") -> None:
        self.resource = resource
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"Failed to fetch {resource}: {status_code} {reason}".rstrip())


class UpstreamPayloadError(UpstreamError):
    """Raised when an upstream response body does not have the expected shape."""


# ---------------------------------------------------------------------------
# Normalization errors
# ---------------------------------------------------------------------------


class NormalizationError(RepoIntakeError):
    """Raised when a raw upstream item lacks a required identifying field."""
