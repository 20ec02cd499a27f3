"""Pydantic models for repository references, documents and analytics output.

Documents carry kind-tagged metadata as a discriminated union so each
document kind has its own fixed field set. Timestamps are stored as the
ISO-8601 strings returned by the GitHub REST API; the analytics package
parses them on demand.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    computed_field,
    field_validator,
)

from repo_intake.exceptions import InvalidRepositoryReferenceError

DEFAULT_API_BASE_URL = "https://api.github.com"

_GITHUB_URL_RE = re.compile(r"github\.com[/:]([^/]+)/([^/?#]+)")
_SHORT_REF_RE = re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)$")

DocumentKind = Literal["pull_request", "issue", "markdown_file"]
IssueState = Literal["open", "closed", "all"]


# ---------------------------------------------------------------------------
# Repository reference and fetch options
# ---------------------------------------------------------------------------


class RepositoryRef(BaseModel):
    """Owner and name of a single GitHub repository."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1)
    name: str = Field(min_length=1)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name

    @classmethod
    def parse(cls, source: str) -> RepositoryRef:
        """Build a reference from a GitHub URL or an ``owner/name`` string.

        Args:
            source: e.g. ``https://github.com/octo/demo`` or ``octo/demo``.

        Returns:
            The parsed repository reference.

        Raises:
            InvalidRepositoryReferenceError: If ``source`` matches neither form.
        """
        text = source.strip()
        match = _GITHUB_URL_RE.search(text) or _SHORT_REF_RE.match(text)
        if not match:
            msg = (
                f"Invalid GitHub repository reference {source!r}. "
                "Expected: https://github.com/owner/repo or owner/repo"
            )
            raise InvalidRepositoryReferenceError(msg)
        owner, name = match.group(1), match.group(2)
        name = name.removesuffix(".git")
        if not name:
            msg = f"Invalid GitHub repository reference {source!r}: empty repository name"
            raise InvalidRepositoryReferenceError(msg)
        return cls(owner=owner, name=name)


class FetchOptions(BaseModel):
    """Per-call ingestion options shared by the three fetch pipelines."""

    access_token: SecretStr | None = None
    state: IssueState = "all"
    per_page: int = Field(default=100, ge=1, le=100)
    max_results: int | None = Field(
        default=None, ge=1, description="Cap per pipeline; None means unbounded."
    )
    api_base_url: str = DEFAULT_API_BASE_URL
    branch: str = Field(default="main", min_length=1)

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class PullRequestMetadata(BaseModel):
    """Metadata extracted from a pull request listing item."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pull_request"] = "pull_request"
    source: str | None = None
    number: int
    state: str | None = None
    author: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    repository: str


class IssueMetadata(BaseModel):
    """Metadata extracted from an issue listing item."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["issue"] = "issue"
    source: str | None = None
    number: int
    state: str | None = None
    author: str | None = None
    labels: tuple[str, ...] = ()
    created_at: str | None = None
    updated_at: str | None = None
    repository: str


class MarkdownFileMetadata(BaseModel):
    """Metadata extracted from a repository contents entry."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["markdown_file"] = "markdown_file"
    source: str | None = None
    path: str
    name: str
    size: int = 0
    sha: str | None = None
    repository: str
    branch: str


DocumentMetadata = Annotated[
    PullRequestMetadata | IssueMetadata | MarkdownFileMetadata,
    Field(discriminator="kind"),
]


class Document(BaseModel):
    """Normalized unit of ingested content."""

    model_config = ConfigDict(frozen=True)

    content: str
    metadata: DocumentMetadata

    @property
    def kind(self) -> DocumentKind:
        return self.metadata.kind


class AggregateResult(BaseModel):
    """Joined output of the pull request, issue and markdown pipelines."""

    pull_requests: list[Document] = Field(default_factory=list)
    issues: list[Document] = Field(default_factory=list)
    markdown_files: list[Document] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all(self) -> list[Document]:
        return [*self.pull_requests, *self.issues, *self.markdown_files]


def coerce_documents(items: Iterable[Document | Mapping[str, Any]]) -> list[Document]:
    """Validate a mix of ``Document`` instances and plain mappings.

    Plain mappings come from JSON snapshots written by the CLI.
    """
    return [
        item if isinstance(item, Document) else Document.model_validate(item)
        for item in items
    ]


# ---------------------------------------------------------------------------
# Analytics configuration
# ---------------------------------------------------------------------------


class IntakeConfig(BaseModel):
    """Options for the intake summary."""

    recency_window_days: int = Field(default=14, ge=0)
    reference_date: datetime | None = None


class AttentionConfig(BaseModel):
    """Options for pull request attention insights."""

    stale_after_days: int = Field(default=7, ge=0)
    top_contributor_count: int = Field(default=3, ge=0)
    reference_date: datetime | None = None


class TriageConfig(BaseModel):
    """Label keywords (case-insensitive) used to bucket open issues."""

    blocker_labels: list[str] = Field(
        default_factory=lambda: ["blocker", "critical", "p0", "urgent"]
    )
    onboarding_labels: list[str] = Field(
        default_factory=lambda: ["good first issue", "starter", "help wanted"]
    )
    security_labels: list[str] = Field(
        default_factory=lambda: ["security", "vulnerability", "cve"]
    )


# ---------------------------------------------------------------------------
# Analytics output
# ---------------------------------------------------------------------------


class StateTotals(BaseModel):
    total: int = 0
    open: int = 0
    closed: int = 0


class IntakeTotals(BaseModel):
    pull_requests: StateTotals
    issues: StateTotals


class IntakeRecency(BaseModel):
    last_open_pr_created_at: datetime | None = None
    most_recent_activity: datetime | None = None
    days_since_last_activity: int | None = None
    recent_activity_within_window: bool = False


class IntakeSummary(BaseModel):
    """Counts and recency signals shown right after an import."""

    repository: str | None = None
    totals: IntakeTotals
    recency: IntakeRecency


class ContributorCount(BaseModel):
    author: str
    pull_request_count: int


class StalePullRequest(BaseModel):
    number: int
    title: str | None = None
    last_updated_at: datetime | None = None
    days_since_update: int


class AttentionTotals(BaseModel):
    pull_requests: int
    stale: int


class AttentionInsights(BaseModel):
    """Stale pull requests and the most active contributors."""

    totals: AttentionTotals
    stale_pull_requests: list[StalePullRequest] = Field(default_factory=list)
    top_contributors: list[ContributorCount] = Field(default_factory=list)
    suggested_action: str


class IssueSummary(BaseModel):
    number: int
    title: str | None = None
    labels: list[str] = Field(default_factory=list)
    url: str | None = None
    last_updated_at: str | None = None


class TriageBuckets(BaseModel):
    blockers: list[IssueSummary] = Field(default_factory=list)
    onboarding: list[IssueSummary] = Field(default_factory=list)
    security: list[IssueSummary] = Field(default_factory=list)
    other_open: list[IssueSummary] = Field(default_factory=list)


class TriageTotals(BaseModel):
    open_issues: int
    blockers: int
    onboarding: int
    security: int
    other_open: int


class TriageSnapshot(BaseModel):
    """Open issues bucketed by label precedence."""

    totals: TriageTotals
    buckets: TriageBuckets
    suggested_action: str
