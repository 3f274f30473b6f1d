"""Thin wrapper over the git commands the pipeline issues."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Iterable, Optional

from autofix.errors import CommandError
from autofix.logging import get_logger

logger = get_logger(__name__)

BOT_NAME = "github-actions[bot]"
BOT_EMAIL = "github-actions[bot]@users.noreply.github.com"


class Git:
    """Run git inside one checkout."""

    def __init__(self, cwd: Path) -> None:
        self.cwd = Path(cwd)

    def run(
        self,
        *args: str,
        check: bool = True,
        display: Optional[str] = None,
    ) -> subprocess.CompletedProcess[str]:
        command = ["git", *args]
        shown = display or " ".join(command)
        logger.debug("Running %s", shown)
        try:
            result = subprocess.run(
                command,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandError(command, 127, str(exc), display=shown) from exc
        if check and result.returncode != 0:
            raise CommandError(
                command,
                result.returncode,
                result.stderr or result.stdout,
                display=shown,
            )
        return result

    def configure_identity(self, name: str = BOT_NAME, email: str = BOT_EMAIL) -> None:
        self.run("config", "user.email", email)
        self.run("config", "user.name", name)

    def checkout_branch(self, branch: str) -> None:
        """Create or reset ``branch`` at the current HEAD and switch to it."""

        self.run("checkout", "-B", branch)

    def add_all(self) -> None:
        self.run("add", "--all")

    def status_porcelain(self) -> str:
        return self.run("status", "--porcelain").stdout

    def has_changes(self) -> bool:
        return bool(self.status_porcelain().strip())

    def commit(self, message: str) -> None:
        self.run("commit", "-m", message)

    def set_remote_url(self, url: str, *, remote: str = "origin", display_url: str = "<redacted>") -> None:
        self.run(
            "remote",
            "set-url",
            remote,
            url,
            display=f"git remote set-url {remote} {display_url}",
        )

    def force_push(self, branch: str, *, remote: str = "origin") -> None:
        self.run("push", remote, f"{branch}:{branch}", "--force")

    def untrack(self, paths: Iterable[str]) -> int:
        """Remove ``paths`` from the index, keeping them on disk.

        Failures are logged and reported through the return code.
        """

        result = self.run("rm", "-r", "--cached", "-f", "--ignore-unmatch", *paths, check=False)
        if result.returncode != 0:
            logger.warning("git rm --cached exited with %s: %s", result.returncode, result.stderr.strip())
        return result.returncode


def authenticated_remote_url(server_url: str, owner: str, repo: str, token: str) -> str:
    host = server_url.split("://", 1)[-1].rstrip("/")
    return f"https://x-access-token:{token}@{host}/{owner}/{repo}.git"


__all__ = ["BOT_EMAIL", "BOT_NAME", "Git", "authenticated_remote_url"]
