"""Scratch files shared between the pipeline and the coding agent."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from autofix.logging import get_logger

logger = get_logger(__name__)

TASK_FILE = ".autofix_task.md"
SUMMARY_FILE = "_autofix_summary.md"
ISSUE_DESCRIPTION_FILE = "_issue_description.md"
DIFF_FILE = "_diff.patch"
LINT_LOG = "_lint.log"
TEST_LOG = "_test.log"
AGENT_LOG = "codex_exec.log"
TITLE_FILE = "_autofix_pr_title.txt"
BODY_FILE = "_autofix_pr_body.md"
REPRO_SCRIPT = "scripts/autofix_repro.sh"
MCP_ERROR_LOG = "_mcp_err.log"
ITEM_RAW = "_item_raw.json"
PLAN_FILE = "AUTOFIX_PLAN.md"

ARTIFACT_ENTRIES = (
    SUMMARY_FILE,
    ISSUE_DESCRIPTION_FILE,
    DIFF_FILE,
    LINT_LOG,
    TEST_LOG,
    AGENT_LOG,
    MCP_ERROR_LOG,
    ITEM_RAW,
    PLAN_FILE,
    TITLE_FILE,
    BODY_FILE,
    REPRO_SCRIPT,
)

CLEANUP_ENTRIES = (
    SUMMARY_FILE,
    ITEM_RAW,
    MCP_ERROR_LOG,
    ".autofix_mcp",
    ".mcp.json",
    TASK_FILE,
    LINT_LOG,
    TEST_LOG,
    DIFF_FILE,
    AGENT_LOG,
    TITLE_FILE,
    BODY_FILE,
)

# Never committed: appended to .git/info/exclude and untracked. Anything the
# run uploads or deletes is scratch, so it is excluded as well.
EXCLUDED_ENTRIES = tuple(
    dict.fromkeys((TASK_FILE, *ARTIFACT_ENTRIES, *CLEANUP_ENTRIES))
)


@dataclass(frozen=True)
class ScratchFiles:
    """Absolute locations of a run's scratch files inside the checkout."""

    root: Path

    def path(self, relative: str) -> Path:
        return self.root / relative

    @property
    def task(self) -> Path:
        return self.path(TASK_FILE)

    @property
    def summary(self) -> Path:
        return self.path(SUMMARY_FILE)

    @property
    def issue_description(self) -> Path:
        return self.path(ISSUE_DESCRIPTION_FILE)

    @property
    def diff(self) -> Path:
        return self.path(DIFF_FILE)

    @property
    def lint_log(self) -> Path:
        return self.path(LINT_LOG)

    @property
    def test_log(self) -> Path:
        return self.path(TEST_LOG)

    @property
    def agent_log(self) -> Path:
        return self.path(AGENT_LOG)

    @property
    def title(self) -> Path:
        return self.path(TITLE_FILE)

    @property
    def body(self) -> Path:
        return self.path(BODY_FILE)

    @property
    def repro_script(self) -> Path:
        return self.path(REPRO_SCRIPT)

    @property
    def exclude_file(self) -> Path:
        return self.root / ".git" / "info" / "exclude"

    def existing(self, entries: Iterable[str] = ARTIFACT_ENTRIES) -> List[Path]:
        """Return the entries that are present on disk, in registry order."""

        return [self.path(entry) for entry in entries if self.path(entry).exists()]

    def append_excludes(self, entries: Iterable[str] = EXCLUDED_ENTRIES) -> Path:
        """Append root-anchored patterns for ``entries`` to the local exclude list.

        Patterns already listed are not written again.
        """

        exclude_path = self.exclude_file
        exclude_path.parent.mkdir(parents=True, exist_ok=True)
        existing = exclude_path.read_text(encoding="utf-8") if exclude_path.exists() else ""
        present = {line.strip() for line in existing.splitlines()}
        patterns = [f"/{entry}" for entry in dict.fromkeys(entries) if f"/{entry}" not in present]
        if not patterns:
            return exclude_path
        separator = "\n" if existing and not existing.endswith("\n") else ""
        with exclude_path.open("a", encoding="utf-8") as handle:
            handle.write(separator + "\n".join(patterns) + "\n")
        return exclude_path

    def cleanup(self, entries: Iterable[str] = CLEANUP_ENTRIES) -> List[Path]:
        """Delete scratch files and directories, returning what was removed."""

        removed: List[Path] = []
        for entry in entries:
            target = self.path(entry)
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()
            else:
                continue
            removed.append(target)
            logger.debug("Removed scratch path %s", target)
        return removed


__all__ = [
    "ARTIFACT_ENTRIES",
    "CLEANUP_ENTRIES",
    "EXCLUDED_ENTRIES",
    "ScratchFiles",
]
