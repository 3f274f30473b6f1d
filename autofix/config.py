"""Run configuration for a single AutoFix invocation."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import yaml

from autofix.actions import mask_secret
from autofix.errors import ConfigurationError
from autofix.utils.strings import build_artifact_name, build_branch_name

PACKAGE_ROOT = Path(__file__).resolve().parent
TEMPLATE_ROOT = PACKAGE_ROOT / "templates"
OVERRIDE_DIR = Path(".github") / "rollbar-autofix"
CONFIG_FILENAME = "config.yaml"

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_SERVER_URL = "https://github.com"

_SECRET_FIELDS = ("openai_api_key", "rollbar_access_token", "github_token")
_REQUIRED_FIELDS = ("openai_api_key", "rollbar_access_token", "item_counter")
_DEFAULTS: Dict[str, Any] = {
    "environment": "unknown",
    "language": "unknown",
    "test_command": "",
    "lint_command": "",
    "max_iterations": "1",
    "pr_base": "main",
    "install_tools": True,
    "agent": "codex",
    "codex_model": "gpt-5",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RunConfig:
    """Inputs for one run. Built once at start and never mutated."""

    openai_api_key: str = field(repr=False)
    rollbar_access_token: str = field(repr=False)
    github_token: str = field(repr=False)
    item_counter: str
    environment: str = "unknown"
    language: str = "unknown"
    test_command: str = ""
    lint_command: str = ""
    max_iterations: str = "1"
    pr_base: str = "main"
    install_tools: bool = True
    agent: str = "codex"
    codex_model: str = "gpt-5"

    def placeholders(self) -> Dict[str, str]:
        """Template values shared by the task prompt and the PR summary."""

        return {
            "ITEM_COUNTER": self.item_counter,
            "ENVIRONMENT": self.environment,
            "LANGUAGE": self.language,
            "TEST_COMMAND": self.test_command,
            "LINT_COMMAND": self.lint_command,
            "MAX_ITERATIONS": self.max_iterations,
        }

    @property
    def default_title(self) -> str:
        return f"Fix: Rollbar item {self.item_counter}"

    @property
    def commit_message(self) -> str:
        return f"Fix Rollbar item {self.item_counter}"


@dataclass(frozen=True)
class RunContext:
    """Where the run happens: checkout, runner identity and output sinks."""

    workspace: Path
    home: Path
    artifact_dir: Path
    template_dir: Path = TEMPLATE_ROOT
    run_id: Optional[str] = None
    run_attempt: Optional[str] = None
    repository: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    server_url: str = DEFAULT_SERVER_URL
    github_output: Optional[Path] = None

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        workspace: Optional[Path] = None,
    ) -> "RunContext":
        env = os.environ if environ is None else environ
        resolved_workspace = workspace or Path(env.get("GITHUB_WORKSPACE") or os.getcwd())
        home = Path(env.get("HOME") or Path.home())
        runner_temp = env.get("RUNNER_TEMP") or tempfile.gettempdir()
        output = env.get("GITHUB_OUTPUT")
        return cls(
            workspace=Path(resolved_workspace).resolve(),
            home=home,
            artifact_dir=Path(env.get("AUTOFIX_ARTIFACT_DIR") or Path(runner_temp) / "autofix-artifacts"),
            run_id=env.get("GITHUB_RUN_ID") or None,
            run_attempt=env.get("GITHUB_RUN_ATTEMPT") or None,
            repository=env.get("GITHUB_REPOSITORY") or None,
            api_url=(env.get("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
            server_url=(env.get("GITHUB_SERVER_URL") or DEFAULT_SERVER_URL).rstrip("/"),
            github_output=Path(output) if output else None,
        )

    def split_repository(self) -> tuple[str, str]:
        slug = (self.repository or "").strip().strip("/")
        owner, _, repo = slug.partition("/")
        if not owner or not repo:
            raise ConfigurationError(
                "GITHUB_REPOSITORY must be set to '<owner>/<repo>' to publish a pull request."
            )
        return owner, repo

    @property
    def artifact_token(self) -> Optional[str]:
        if not self.run_id:
            return None
        return f"{self.run_id}-{self.run_attempt or '1'}"

    def branch_name(self, config: RunConfig) -> str:
        return build_branch_name(config.item_counter, self.run_id)

    def artifact_name(self, config: RunConfig) -> str:
        return build_artifact_name(config.item_counter, self.artifact_token)


def default_config_path(workspace: Path) -> Path:
    return workspace / OVERRIDE_DIR / CONFIG_FILENAME


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid configuration file {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping.")
    return {str(key).strip().lower().replace("-", "_"): value for key, value in loaded.items()}


def _read_inputs(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name in RunConfig.__dataclass_fields__:
        raw = environ.get(f"INPUT_{name.upper()}")
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    return values


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Input '{name}' must be a boolean, got '{value}'.")


def load_run_config(
    environ: Optional[Mapping[str, str]] = None,
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    mask: Callable[[Optional[str]], None] = mask_secret,
) -> RunConfig:
    """Merge file, action-input and CLI values into a validated ``RunConfig``.

    Precedence from lowest to highest: YAML file, ``INPUT_*`` variables,
    ``overrides``. Secrets are handed to ``mask`` as soon as they are read.
    """

    env = os.environ if environ is None else environ

    merged: Dict[str, Any] = dict(_DEFAULTS)
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigurationError(f"Configuration file {config_path} does not exist.")
        merged.update(_load_yaml(config_path))
    merged.update(_read_inputs(env))
    for key, value in (overrides or {}).items():
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        merged[key] = value

    if not merged.get("github_token") and env.get("GITHUB_TOKEN"):
        merged["github_token"] = env["GITHUB_TOKEN"]

    for name in _SECRET_FIELDS:
        mask(merged.get(name))

    unknown = sorted(set(merged) - set(RunConfig.__dataclass_fields__))
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

    missing = [name for name in _REQUIRED_FIELDS if not str(merged.get(name) or "").strip()]
    if missing:
        raise ConfigurationError(
            "Input required and not supplied: " + ", ".join(missing)
        )
    if not str(merged.get("github_token") or "").strip():
        raise ConfigurationError("A GitHub token is required to create the pull request.")

    max_iterations = str(merged["max_iterations"]).strip()
    if not max_iterations.isdigit() or int(max_iterations) < 1:
        raise ConfigurationError(
            f"Input 'max_iterations' must be a positive integer, got '{max_iterations}'."
        )

    return RunConfig(
        openai_api_key=str(merged["openai_api_key"]),
        rollbar_access_token=str(merged["rollbar_access_token"]),
        github_token=str(merged["github_token"]),
        item_counter=str(merged["item_counter"]).strip(),
        environment=str(merged["environment"]),
        language=str(merged["language"]),
        test_command=str(merged["test_command"] or ""),
        lint_command=str(merged["lint_command"] or ""),
        max_iterations=max_iterations,
        pr_base=str(merged["pr_base"]),
        install_tools=_coerce_bool("install_tools", merged["install_tools"]),
        agent=str(merged["agent"]).strip().lower(),
        codex_model=str(merged["codex_model"]),
    )


__all__ = [
    "RunConfig",
    "RunContext",
    "TEMPLATE_ROOT",
    "default_config_path",
    "load_run_config",
]
