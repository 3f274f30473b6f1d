"""Exceptions raised by AutoFix pipeline steps."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class AutofixError(RuntimeError):
    """Base class for failures that abort an AutoFix run."""


class ConfigurationError(AutofixError):
    """Raised when required inputs or credentials are missing."""


class TemplateNotFoundError(AutofixError):
    """Raised when neither the override nor the bundled template exists."""

    def __init__(self, filename: str, default_path: Path) -> None:
        super().__init__(f"Template {filename} not found at {default_path}")
        self.filename = filename
        self.default_path = default_path


class AgentExecutionError(AutofixError):
    """Raised when the coding agent exits with a non-zero status."""

    def __init__(self, exit_code: int, log_path: Optional[Path] = None) -> None:
        location = log_path.name if log_path is not None else "the agent log"
        super().__init__(
            f"codex exec failed with exit code {exit_code}. See {location} for details."
        )
        self.exit_code = exit_code
        self.log_path = log_path


class CommandError(AutofixError):
    """Raised when an external command required by the pipeline fails."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        output: str = "",
        *,
        display: Optional[str] = None,
    ) -> None:
        shown = display or " ".join(command)
        message = f"Command '{shown}' failed with exit code {returncode}."
        detail = (output or "").strip()
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        self.output = output


class GitHubApiError(AutofixError):
    """Raised when the GitHub REST API rejects a request."""

    def __init__(self, method: str, endpoint: str, status: int, detail: str = "") -> None:
        message = f"GitHub API {method} {endpoint} failed with status {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.method = method
        self.endpoint = endpoint
        self.status = status
        self.detail = detail


__all__ = [
    "AgentExecutionError",
    "AutofixError",
    "CommandError",
    "ConfigurationError",
    "GitHubApiError",
    "TemplateNotFoundError",
]
