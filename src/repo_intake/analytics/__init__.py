"""Maintainer-facing analytics computed from normalized documents."""

from __future__ import annotations

from repo_intake.analytics.attention import analyze_attention
from repo_intake.analytics.intake import summarize
from repo_intake.analytics.triage import triage

__all__ = ["analyze_attention", "summarize", "triage"]
