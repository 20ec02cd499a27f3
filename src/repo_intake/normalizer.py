"""Map raw GitHub REST items to uniform ``Document`` records.

Every document kind has a fixed markdown template: a header line, key
fields, a body section and trailing links. Optional fields that are
absent are left out of the text rather than rendered empty; a missing
description renders as ``_NO_DESCRIPTION``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from repo_intake.exceptions import NormalizationError
from repo_intake.models import (
    Document,
    DocumentKind,
    IssueMetadata,
    MarkdownFileMetadata,
    PullRequestMetadata,
)

_NO_DESCRIPTION = "No description provided"


def normalize(
    kind: DocumentKind,
    raw: Mapping[str, Any],
    *,
    repository: str,
    branch: str | None = None,
    body: str | None = None,
) -> Document:
    """Build a ``Document`` of the given kind from a raw upstream item.

    Args:
        kind: ``pull_request``, ``issue`` or ``markdown_file``.
        raw: The decoded JSON object from the listing endpoint.
        repository: ``owner/name`` of the source repository.
        branch: Branch the markdown file was read from (markdown only).
        body: Downloaded file text (markdown only).

    Returns:
        The normalized document.

    Raises:
        NormalizationError: If a required identifying field is missing or
            malformed, or ``kind`` is unknown.
    """
    try:
        if kind == "pull_request":
            return _normalize_pull_request(raw, repository)
        if kind == "issue":
            return _normalize_issue(raw, repository)
        if kind == "markdown_file":
            return _normalize_markdown_file(raw, repository, branch or "main", body or "")
    except (ValueError, TypeError) as exc:
        # pydantic.ValidationError is a ValueError.
        raise NormalizationError(f"Malformed {kind} item: {exc}") from exc
    raise NormalizationError(f"Unknown document kind: {kind!r}")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _require(raw: Mapping[str, Any], key: str, kind: str) -> Any:
    value = raw.get(key)
    if value is None:
        raise NormalizationError(f"{kind} item is missing required field {key!r}")
    return value


def _login(raw: Mapping[str, Any]) -> str | None:
    user = raw.get("user")
    if isinstance(user, Mapping):
        login = user.get("login")
        return str(login) if login else None
    return None


def _ref(raw: Mapping[str, Any], key: str) -> str | None:
    branch = raw.get(key)
    if isinstance(branch, Mapping) and branch.get("ref"):
        return str(branch["ref"])
    return None


def _label_names(raw: Mapping[str, Any]) -> tuple[str, ...]:
    names: list[str] = []
    for label in raw.get("labels") or []:
        name = label.get("name") if isinstance(label, Mapping) else label
        if name:
            names.append(str(name))
    return tuple(names)


def _field_line(label: str, value: Any) -> str | None:
    if value is None or value == "":
        return None
    return f"**{label}:** {value}"


def _render(
    header: str,
    fields: list[str | None],
    section: str,
    text: str,
    footer: list[str | None],
) -> str:
    lines = [header, ""]
    lines.extend(line for line in fields if line)
    lines.extend(["", f"## {section}", text])
    trailer = [line for line in footer if line]
    if trailer:
        lines.append("")
        lines.extend(trailer)
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Per-kind templates
# ---------------------------------------------------------------------------


def _normalize_pull_request(raw: Mapping[str, Any], repository: str) -> Document:
    number = _require(raw, "number", "pull_request")
    author = _login(raw)
    content = _render(
        f"# Pull Request #{number}: {raw.get('title') or ''}".rstrip(),
        [
            _field_line("Author", author),
            _field_line("State", raw.get("state")),
            _field_line("Created", raw.get("created_at")),
            _field_line("Updated", raw.get("updated_at")),
            _field_line("Merged", raw.get("merged_at")),
        ],
        "Description",
        raw.get("body") or _NO_DESCRIPTION,
        [
            _field_line("URL", raw.get("html_url")),
            _field_line("Base Branch", _ref(raw, "base")),
            _field_line("Head Branch", _ref(raw, "head")),
        ],
    )
    metadata = PullRequestMetadata(
        source=raw.get("html_url"),
        number=number,
        state=raw.get("state"),
        author=author,
        created_at=raw.get("created_at"),
        updated_at=raw.get("updated_at"),
        repository=repository,
    )
    return Document(content=content, metadata=metadata)


def _normalize_issue(raw: Mapping[str, Any], repository: str) -> Document:
    number = _require(raw, "number", "issue")
    author = _login(raw)
    labels = _label_names(raw)
    content = _render(
        f"# Issue #{number}: {raw.get('title') or ''}".rstrip(),
        [
            _field_line("Author", author),
            _field_line("State", raw.get("state")),
            _field_line("Created", raw.get("created_at")),
            _field_line("Updated", raw.get("updated_at")),
            _field_line("Closed", raw.get("closed_at")),
            _field_line("Labels", ", ".join(labels)),
        ],
        "Description",
        raw.get("body") or _NO_DESCRIPTION,
        [
            _field_line("URL", raw.get("html_url")),
            _field_line("Comments", raw.get("comments")),
        ],
    )
    metadata = IssueMetadata(
        source=raw.get("html_url"),
        number=number,
        state=raw.get("state"),
        author=author,
        labels=labels,
        created_at=raw.get("created_at"),
        updated_at=raw.get("updated_at"),
        repository=repository,
    )
    return Document(content=content, metadata=metadata)


def _normalize_markdown_file(
    raw: Mapping[str, Any], repository: str, branch: str, body: str
) -> Document:
    path = str(_require(raw, "path", "markdown_file"))
    name = str(raw.get("name") or path.rsplit("/", 1)[-1])
    size = int(raw.get("size") or 0)
    content = _render(
        f"# {name}",
        [
            _field_line("Path", path),
            f"**Size:** {size} bytes",
            _field_line("SHA", raw.get("sha")),
        ],
        "Content",
        f"\n{body}",
        [],
    )
    metadata = MarkdownFileMetadata(
        source=raw.get("html_url"),
        path=path,
        name=name,
        size=size,
        sha=raw.get("sha"),
        repository=repository,
        branch=branch,
    )
    return Document(content=content, metadata=metadata)
