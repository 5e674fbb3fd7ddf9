"""Custom logger with rich console formatting and rotating file output.

Every log emitted by the builder (CLI runs, engine submissions, test runs)
is also written to rotating files under ``logs/``.  Files are capped at
**10 MB** each and up to **5** backups are kept.
"""

from __future__ import annotations

import logging
import logging.handlers
import re
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
# Project root is two levels above src/util/.
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_LOG_DIR = _PROJECT_ROOT / "logs"
_LOG_DIR.mkdir(parents=True, exist_ok=True)

# ---------------------------------------------------------------------------
# Rich console handler (for terminal output)
# ---------------------------------------------------------------------------
BUILDER_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "debug": "dim white",
        "success": "bold green",
        "api": "bold magenta",
        "template": "bold blue",
    }
)

console = Console(theme=BUILDER_THEME)

_rich_handler = RichHandler(
    console=console,
    show_time=True,
    show_level=True,
    show_path=True,
    omit_repeated_times=False,
    log_time_format="%m/%d/%y %H:%M:%S",
    rich_tracebacks=True,
    tracebacks_show_locals=False,
    markup=True,
)
_rich_handler.setFormatter(logging.Formatter("%(message)s"))

# ---------------------------------------------------------------------------
# Rotating file handler (for persistent log files)
# ---------------------------------------------------------------------------
# Only the markup tags used in this project are stripped.  Content brackets
# such as ``[15m]`` stay in the message.
_RICH_TAG_RE = re.compile(
    r"\[/?"
    r"(?:success|error|api|template|"
    r"bold(?:\s+\w+)?|dim|italic|underline|strike)"
    r"\]",
    re.IGNORECASE,
)


class _PlainFileFormatter(logging.Formatter):
    """Formatter that strips Rich markup tags for clean plain-text log files."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        record = logging.makeLogRecord(record.__dict__)
        record.msg = _RICH_TAG_RE.sub("", record.getMessage())
        record.args = None
        return super().format(record)


_file_handler = logging.handlers.RotatingFileHandler(
    filename=_LOG_DIR / "strategy_builder.log",
    maxBytes=10 * 1024 * 1024,  # 10 MB per file
    backupCount=5,
    encoding="utf-8",
)
_file_handler.setFormatter(
    _PlainFileFormatter(
        fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
)
_file_handler.setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Logger setup helpers
# ---------------------------------------------------------------------------
def setup_logger(name: str = "strategy_builder", level: int = logging.INFO) -> logging.Logger:
    """Set up and return a configured logger instance."""
    app_logger = logging.getLogger(name)
    app_logger.setLevel(level)

    if app_logger.handlers:
        return app_logger

    app_logger.addHandler(_rich_handler)
    app_logger.addHandler(_file_handler)
    app_logger.propagate = False
    return app_logger


def configure_http_client_logging(show_requests: bool = False) -> None:
    """Keep httpx/httpcore logs styled, but hide per-request lines by default."""
    client_level = logging.INFO if show_requests else logging.WARNING
    for name in ("httpx", "httpcore"):
        client_logger = logging.getLogger(name)
        client_logger.handlers.clear()
        client_logger.addHandler(_rich_handler)
        client_logger.addHandler(_file_handler)
        client_logger.setLevel(client_level)
        client_logger.propagate = False


def configure_logging(level: str = "INFO", show_requests: bool = False) -> logging.Logger:
    """Configure root, app and http-client loggers."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(_rich_handler)
    root_logger.addHandler(_file_handler)
    root_logger.setLevel(log_level)

    configure_http_client_logging(show_requests=show_requests)

    app_logger = setup_logger(level=log_level)
    app_logger.setLevel(log_level)
    return app_logger


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------
logger = setup_logger()


# ---------------------------------------------------------------------------
# Convenience helpers with rich markup
# ---------------------------------------------------------------------------
def log_api(method: str, path: str, status: int | None = None) -> None:
    """Log an engine request/response."""
    status_str = f" -> {status}" if status is not None else ""
    logger.info(f"[api]{method}[/api] {path}{status_str}")


def log_template(action: str, detail: str = "") -> None:
    """Log template library activity."""
    logger.info(f"[template]{action}[/template] {detail}".rstrip())


def log_success(message: str) -> None:
    """Log success message."""
    logger.info(f"[success]{message}[/success]")


def log_error(message: str, exc: Exception | None = None) -> None:
    """Log error message."""
    logger.error(f"[error]{message}[/error]", exc_info=exc)
