"""GitHub Actions workflow-command helpers.

These mirror the handful of runner features the pipeline needs: collapsible log
groups, secret masking, step outputs and failure reporting. Outside of a runner
the commands are still printed, which keeps local runs readable.
"""

from __future__ import annotations

import sys
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping, Optional, TextIO

from autofix.logging import get_logger, register_secret

logger = get_logger(__name__)


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _issue(command: str, message: str = "", *, stream: Optional[TextIO] = None) -> None:
    target = stream or sys.stdout
    target.write(f"::{command}::{_escape_data(message)}\n")
    target.flush()


def mask_secret(value: Optional[str], *, stream: Optional[TextIO] = None) -> None:
    """Mark ``value`` as secret for both the runner log and AutoFix loggers."""

    if not value:
        return
    register_secret(value)
    _issue("add-mask", value, stream=stream)


@contextmanager
def group(title: str, *, stream: Optional[TextIO] = None) -> Iterator[None]:
    """Wrap the enclosed output in a collapsible runner log group."""

    _issue("group", title, stream=stream)
    try:
        yield
    finally:
        _issue("endgroup", stream=stream)


def warning(message: str, *, stream: Optional[TextIO] = None) -> None:
    logger.warning("%s", message)
    _issue("warning", message, stream=stream)


def set_failed(message: str, *, stream: Optional[TextIO] = None) -> None:
    """Report the run's single top-level failure."""

    logger.error("%s", message)
    _issue("error", message, stream=stream)


def write_outputs(outputs: Mapping[str, str], github_output: Optional[Path]) -> None:
    """Append step outputs to the runner's output file.

    Multi-line values use the heredoc delimiter syntax. Without an output file
    the values are only logged.
    """

    if github_output is None:
        for key, value in outputs.items():
            logger.debug("Output %s=%s", key, value)
        return

    github_output.parent.mkdir(parents=True, exist_ok=True)
    with github_output.open("a", encoding="utf-8") as handle:
        for key, value in outputs.items():
            text = str(value)
            if "\n" in text or "\r" in text:
                delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
                handle.write(f"{key}<<{delimiter}\n{text}\n{delimiter}\n")
            else:
                handle.write(f"{key}={text}\n")


__all__ = ["group", "mask_secret", "set_failed", "warning", "write_outputs"]
