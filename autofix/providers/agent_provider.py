"""Request/response contract between the pipeline and a coding agent."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - imported for annotations only
    from autofix.config import RunConfig, RunContext


@dataclass(frozen=True)
class AgentRequest:
    """Everything an agent needs for one invocation."""

    task: str
    workspace: Path
    task_file: Path
    log_path: Path
    title_path: Path
    body_path: Path
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AgentResponse:
    """Outcome of an agent invocation.

    ``title`` and ``body`` carry the optional pull-request content the agent
    wrote to its side files; blank files are reported as ``None``.
    """

    exit_code: int
    output: str = ""
    log_path: Optional[Path] = None
    title: Optional[str] = None
    body: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


def read_side_file(path: Path) -> Optional[str]:
    """Return the file's content, or ``None`` when it is missing or blank."""

    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    return content if content.strip() else None


class AgentProvider(ABC):
    name = "agent"

    def install_tools(self) -> None:
        """Install the agent's command-line tooling. No-op by default."""

    def configure(self) -> Optional[Path]:
        """Write agent configuration, returning its location when one is written."""

        return None

    @abstractmethod
    def run(self, request: AgentRequest) -> AgentResponse:
        pass

    @staticmethod
    def collect_side_files(request: AgentRequest) -> tuple[Optional[str], Optional[str]]:
        return read_side_file(request.title_path), read_side_file(request.body_path)


def create_provider(
    name: str,
    config: "RunConfig",
    context: "RunContext",
    **options: Any,
) -> AgentProvider:
    normalized = (name or "").strip().lower()

    if normalized in {"codex", "openai-codex", "codex-cli"}:
        from autofix.providers.codex_provider import CodexProvider

        return CodexProvider(config, context, **options)

    if normalized in {"null", "none", "noop"}:
        from autofix.providers.null_provider import NullProvider

        return NullProvider()

    raise ValueError(f"Unsupported agent provider: {name}")


__all__ = [
    "AgentProvider",
    "AgentRequest",
    "AgentResponse",
    "create_provider",
    "read_side_file",
]
