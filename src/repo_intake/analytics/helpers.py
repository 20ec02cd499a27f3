"""Timestamp, state and title helpers shared by the analytics functions."""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from repo_intake.models import MarkdownFileMetadata

if TYPE_CHECKING:
    from repo_intake.models import Document

_TITLE_RE = re.compile(r"^#\s*(.+)$")
_ONE_DAY = timedelta(days=1)


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, returning None when absent or invalid.

    Naive values are assumed to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def resolve_reference_date(value: datetime | None) -> datetime:
    """Return ``value`` as an aware datetime, or the current UTC instant."""
    if value is None:
        return datetime.now(tz=UTC)
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def days_between(target: datetime, reference: datetime) -> int:
    """Whole days from ``target`` to ``reference``, floored; negative if reversed."""
    return math.floor((reference - target) / _ONE_DAY)


def latest(values: list[datetime | None]) -> datetime | None:
    present = [value for value in values if value is not None]
    return max(present) if present else None


def extract_title(document: Document) -> str | None:
    """Title from the document's markdown header line, if it has one."""
    first_line = document.content.split("\n", 1)[0]
    match = _TITLE_RE.match(first_line)
    return match.group(1).strip() if match else None


def is_open(document: Document) -> bool:
    """True iff the document's ``state``, lower-cased, is exactly ``open``.

    Markdown documents have no state and never count as open.
    """
    metadata = document.metadata
    if isinstance(metadata, MarkdownFileMetadata):
        return False
    return (metadata.state or "").lower() == "open"


def created_at(document: Document) -> datetime | None:
    metadata = document.metadata
    if isinstance(metadata, MarkdownFileMetadata):
        return None
    return parse_timestamp(metadata.created_at)


def updated_at(document: Document) -> datetime | None:
    metadata = document.metadata
    if isinstance(metadata, MarkdownFileMetadata):
        return None
    return parse_timestamp(metadata.updated_at)
