"""structlog setup for repo-intake and the per-pipeline logging context.

Every ingestion run gets a run ID bound into the structlog context vars.
Each fetch pipeline (pull requests, issues, markdown files) additionally
binds its own name, so interleaved output from the three concurrent
pipelines stays attributable.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


def generate_run_id() -> str:
    """Return a fresh UUID4 string identifying one ingestion run."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# structlog configuration
# ---------------------------------------------------------------------------


_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# httpx logs every request at INFO; our client already logs them at DEBUG.
_CHATTY_LIBRARIES = ("httpx", "httpcore")


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def _handlers(numeric_level: int, log_file: str | Path | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(str(log_file), encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(numeric_level)
    return handlers


def configure_logging(
    level: str = "INFO",
    fmt: str = "console",
    log_file: str | Path | None = None,
    run_id: str | None = None,
) -> None:
    """Route structlog events through stdlib handlers on stderr and a file.

    Calling it again replaces the previous handlers, so the CLI can
    reconfigure per command.

    Args:
        level: Log level name, case-insensitive.
        fmt: ``"console"`` for coloured dev output, ``"json"`` for one JSON
            object per line.
        log_file: Optional extra destination for the same events.
        run_id: Bound as ``run_id`` on every subsequent event.

    Raises:
        ValueError: If ``level`` is not a known level name.
    """
    level_name = level.upper()
    if level_name not in _VALID_LEVELS:
        msg = f"Invalid log level: {level!r}. Must be one of {sorted(_VALID_LEVELS)}"
        raise ValueError(msg)
    numeric_level = getattr(logging, level_name)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(fmt),
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)
    for handler in _handlers(numeric_level, log_file):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    library_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    if run_id:
        structlog.contextvars.bind_contextvars(run_id=run_id)


# ---------------------------------------------------------------------------
# Pipeline logging context manager
# ---------------------------------------------------------------------------


@contextmanager
def pipeline_logging_context(
    pipeline: str,
    **extra: Any,
) -> Iterator[structlog.stdlib.BoundLogger]:
    """Bind ``pipeline`` and ``extra`` to every event logged inside the block.

    Logs ``pipeline_start`` on entry, ``pipeline_error`` with the traceback
    if the block raises, and ``pipeline_end`` on exit. Each pipeline runs
    in its own asyncio task, and tasks copy the context on creation, so the
    bindings never leak between pipelines.

    Example::

        with pipeline_logging_context("issues", repository="octo/demo") as log:
            log.info("page_processed", page=1)
    """
    structlog.contextvars.bind_contextvars(pipeline=pipeline, **extra)
    log: structlog.stdlib.BoundLogger = structlog.get_logger(f"repo_intake.{pipeline}")
    log.info("pipeline_start")

    try:
        yield log
    except Exception:
        log.exception("pipeline_error")
        raise
    finally:
        log.info("pipeline_end")
        structlog.contextvars.unbind_contextvars("pipeline", *extra.keys())
