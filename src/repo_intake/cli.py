"""Typer CLI entry point for repo-intake."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import httpx
import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from repo_intake import __version__
from repo_intake.aggregator import ingest
from repo_intake.analytics import analyze_attention, summarize, triage
from repo_intake.config import Settings, format_validation_error
from repo_intake.exceptions import RepoIntakeError
from repo_intake.logging import configure_logging, generate_run_id
from repo_intake.models import (
    AggregateResult,
    AttentionInsights,
    Document,
    IntakeSummary,
    TriageSnapshot,
    coerce_documents,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="repo-intake",
    help="Import GitHub pull requests, issues and docs, then summarise what needs attention.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

SourceArg = Annotated[
    str,
    typer.Argument(help="GitHub URL (https://github.com/owner/repo) or owner/repo."),
]
TokenOpt = Annotated[
    str | None,
    typer.Option("--token", "-t", envvar="GITHUB_TOKEN", help="GitHub access token."),
]
StateOpt = Annotated[
    str | None,
    typer.Option("--state", "-s", help="Pull request / issue state: open, closed, all."),
]
PerPageOpt = Annotated[
    int | None, typer.Option("--per-page", help="Page size (1-100).")
]
MaxResultsOpt = Annotated[
    int | None,
    typer.Option("--max-results", "-n", help="Cap on documents per pipeline."),
]
BranchOpt = Annotated[
    str | None, typer.Option("--branch", "-b", help="Branch to read markdown from.")
]
ApiUrlOpt = Annotated[
    str | None, typer.Option("--api-url", help="GitHub REST API base URL.")
]
ConfigOpt = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config YAML file."),
]
VerboseOpt = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")
]
JsonOpt = Annotated[
    bool, typer.Option("--json", help="Print machine-readable JSON instead of tables.")
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_settings(
    config_path: Path | None = None,
    verbose: bool = False,
) -> Settings:
    """Load settings with error handling and user-friendly messages."""
    overrides: dict[str, Any] = {}
    if verbose:
        overrides["logging"] = {"level": "DEBUG"}
    try:
        settings = Settings.load(config_path=config_path, **overrides)
    except ValidationError as exc:
        err_console.print(
            Panel(
                escape(format_validation_error(exc)),
                title="Configuration Error",
                border_style="red",
            )
        )
        raise typer.Exit(code=1) from exc

    configure_logging(
        level=settings.logging.level,
        fmt=settings.logging.format,
        log_file=settings.logging.file,
        run_id=generate_run_id(),
    )
    return settings


def _display_error(exc: BaseException) -> None:
    err_console.print(
        Panel(
            f"[bold red]{type(exc).__name__}:[/bold red] {escape(str(exc))}",
            title="Ingestion Failed",
            border_style="red",
        )
    )


def _run_ingest(
    settings: Settings,
    source: str,
    *,
    token: str | None,
    state: str | None,
    per_page: int | None,
    max_results: int | None,
    branch: str | None,
    api_url: str | None,
) -> AggregateResult:
    try:
        options = settings.fetch_options(
            access_token=token,
            state=state,
            per_page=per_page,
            max_results=max_results,
            branch=branch,
            api_base_url=api_url,
        )
    except ValidationError as exc:
        err_console.print(
            Panel(
                escape(format_validation_error(exc)),
                title="Invalid Option",
                border_style="red",
            )
        )
        raise typer.Exit(code=1) from exc

    try:
        return asyncio.run(
            ingest(
                source,
                options,
                governor_settings=settings.governor,
                timeout=settings.github.timeout,
            )
        )
    except (RepoIntakeError, httpx.HTTPError) as exc:
        logger.debug("ingest_failed", error=str(exc))
        _display_error(exc)
        raise typer.Exit(code=1) from exc


def _display_counts(result: AggregateResult) -> None:
    table = Table(title="Ingested Documents", show_lines=False)
    table.add_column("Kind", style="cyan")
    table.add_column("Documents", justify="right")
    table.add_row("Pull requests", str(len(result.pull_requests)))
    table.add_row("Issues", str(len(result.issues)))
    table.add_row("Markdown files", str(len(result.markdown_files)))
    table.add_row("[bold]Total[/bold]", f"[bold]{len(result.all)}[/bold]")
    console.print(table)


def _display_intake(summary: IntakeSummary) -> None:
    table = Table(title=f"Intake Summary: {summary.repository or 'unknown'}")
    table.add_column("Kind", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Open", justify="right", style="green")
    table.add_column("Closed", justify="right", style="dim")
    for label, totals in (
        ("Pull requests", summary.totals.pull_requests),
        ("Issues", summary.totals.issues),
    ):
        table.add_row(label, str(totals.total), str(totals.open), str(totals.closed))
    console.print(table)

    recency = summary.recency
    if recency.most_recent_activity is None:
        console.print("[yellow]No pull request or issue activity found.[/yellow]")
        return
    style = "green" if recency.recent_activity_within_window else "yellow"
    console.print(
        f"Last activity: [bold]{recency.most_recent_activity.isoformat()}[/bold] "
        f"([{style}]{recency.days_since_last_activity} days ago[/{style}])"
    )


def _display_attention(insights: AttentionInsights) -> None:
    contributors = Table(title="Top Contributors")
    contributors.add_column("Author", style="cyan")
    contributors.add_column("Pull requests", justify="right")
    for contributor in insights.top_contributors:
        contributors.add_row(contributor.author, str(contributor.pull_request_count))
    console.print(contributors)

    if insights.stale_pull_requests:
        stale = Table(title="Stale Pull Requests")
        stale.add_column("#", justify="right")
        stale.add_column("Title")
        stale.add_column("Days idle", justify="right", style="yellow")
        for pr in insights.stale_pull_requests:
            stale.add_row(str(pr.number), pr.title or "", str(pr.days_since_update))
        console.print(stale)
    console.print(f"[bold]Next step:[/bold] {insights.suggested_action}")


def _display_triage(snapshot: TriageSnapshot) -> None:
    table = Table(title=f"Issue Triage ({snapshot.totals.open_issues} open)")
    table.add_column("Bucket", style="cyan")
    table.add_column("Issues", justify="right")
    table.add_column("Examples")
    for label, bucket in (
        ("Blockers", snapshot.buckets.blockers),
        ("Onboarding", snapshot.buckets.onboarding),
        ("Security", snapshot.buckets.security),
        ("Other open", snapshot.buckets.other_open),
    ):
        examples = ", ".join(f"#{issue.number}" for issue in bucket[:5])
        table.add_row(label, str(len(bucket)), examples)
    console.print(table)
    console.print(f"[bold]Next step:[/bold] {snapshot.suggested_action}")


def _analyze(
    settings: Settings,
    pull_requests: list[Document],
    issues: list[Document],
    as_json: bool,
) -> None:
    summary = summarize(pull_requests, issues, settings.analytics.intake_config())
    insights = analyze_attention(pull_requests, settings.analytics.attention_config())
    snapshot = triage(issues, settings.analytics.triage_config())

    if as_json:
        console.print_json(
            data={
                "intake_summary": summary.model_dump(mode="json"),
                "attention_insights": insights.model_dump(mode="json"),
                "triage_snapshot": snapshot.model_dump(mode="json"),
            }
        )
        return

    _display_intake(summary)
    _display_attention(insights)
    _display_triage(snapshot)


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]repo-intake[/bold] {__version__}")
        raise typer.Exit


@app.callback()
def common(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """repo-intake global options."""


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command(name="ingest")
def ingest_cmd(
    source: SourceArg,
    token: TokenOpt = None,
    state: StateOpt = None,
    per_page: PerPageOpt = None,
    max_results: MaxResultsOpt = None,
    branch: BranchOpt = None,
    api_url: ApiUrlOpt = None,
    config: ConfigOpt = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the documents to a JSON snapshot."),
    ] = None,
    verbose: VerboseOpt = False,
) -> None:
    """Fetch pull requests, issues and markdown files for a repository."""
    settings = _load_settings(config, verbose)
    result = _run_ingest(
        settings,
        source,
        token=token,
        state=state,
        per_page=per_page,
        max_results=max_results,
        branch=branch,
        api_url=api_url,
    )
    _display_counts(result)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"[green]Snapshot saved:[/green] {output}")


@app.command()
def report(
    source: SourceArg,
    token: TokenOpt = None,
    state: StateOpt = None,
    per_page: PerPageOpt = None,
    max_results: MaxResultsOpt = None,
    branch: BranchOpt = None,
    api_url: ApiUrlOpt = None,
    config: ConfigOpt = None,
    as_json: JsonOpt = False,
    verbose: VerboseOpt = False,
) -> None:
    """Ingest a repository and print the intake, attention and triage analytics."""
    settings = _load_settings(config, verbose)
    result = _run_ingest(
        settings,
        source,
        token=token,
        state=state,
        per_page=per_page,
        max_results=max_results,
        branch=branch,
        api_url=api_url,
    )
    _analyze(settings, result.pull_requests, result.issues, as_json)


@app.command()
def analyze(
    snapshot: Annotated[
        Path,
        typer.Argument(help="JSON snapshot written by 'repo-intake ingest --output'."),
    ],
    config: ConfigOpt = None,
    as_json: JsonOpt = False,
    verbose: VerboseOpt = False,
) -> None:
    """Run the analytics on a saved snapshot without network access."""
    settings = _load_settings(config, verbose)
    if not snapshot.exists():
        err_console.print(f"[red]Snapshot not found:[/red] {snapshot}")
        raise typer.Exit(code=1)

    try:
        payload = json.loads(snapshot.read_text(encoding="utf-8"))
        pull_requests = coerce_documents(payload.get("pull_requests", []))
        issues = coerce_documents(payload.get("issues", []))
    except (json.JSONDecodeError, ValidationError, AttributeError) as exc:
        err_console.print(f"[red]Invalid snapshot:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    _analyze(settings, pull_requests, issues, as_json)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
