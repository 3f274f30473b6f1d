"""Run caller-supplied lint/test commands and capture the resulting diff.

Failures here never stop the pipeline: exit codes are logged and recorded so a
reviewer can judge the pull request from the captured logs.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from autofix import actions
from autofix.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckReport:
    lint_exit_code: Optional[int]
    test_exit_code: Optional[int]
    diff: str

    @property
    def passed(self) -> bool:
        return all(code in (None, 0) for code in (self.lint_exit_code, self.test_exit_code))


def run_shell_command(command: str, cwd: Path, log_path: Path) -> int:
    """Run ``command`` through a login bash, writing stdout and stderr to ``log_path``."""

    with log_path.open("w", encoding="utf-8") as handle:
        try:
            result = subprocess.run(
                ["bash", "-lc", command],
                cwd=cwd,
                stdout=handle,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except FileNotFoundError as exc:
            handle.write(f"Unable to start bash: {exc}\n")
            return 127
    return result.returncode


def capture_diff(cwd: Path, diff_path: Path) -> str:
    try:
        result = subprocess.run(
            ["git", "diff", "--no-ext-diff"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        logger.warning("git not available to capture diff: %s", exc)
        diff = ""
    else:
        if result.returncode != 0:
            logger.warning("git diff exited with %s: %s", result.returncode, result.stderr.strip())
        diff = result.stdout or ""
    diff_path.write_text(diff, encoding="utf-8")
    return diff


def run_post_checks(
    lint_command: str,
    test_command: str,
    *,
    cwd: Path,
    lint_log: Path,
    test_log: Path,
    diff_path: Path,
) -> CheckReport:
    with actions.group("Post-apply lint/test/diff"):
        lint_log.write_text("", encoding="utf-8")
        test_log.write_text("", encoding="utf-8")

        lint_exit: Optional[int] = None
        if lint_command:
            lint_exit = run_shell_command(lint_command, cwd, lint_log)
            logger.info("lint exit code: %s", lint_exit)

        test_exit: Optional[int] = None
        if test_command:
            test_exit = run_shell_command(test_command, cwd, test_log)
            logger.info("test exit code: %s", test_exit)

        diff = capture_diff(cwd, diff_path)

    return CheckReport(lint_exit_code=lint_exit, test_exit_code=test_exit, diff=diff)


__all__ = ["CheckReport", "capture_diff", "run_post_checks", "run_shell_command"]
