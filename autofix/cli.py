"""Typer CLI wiring for Rollbar AutoFix."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from autofix import __version__, actions
from autofix.config import RunContext, default_config_path, load_run_config
from autofix.errors import AutofixError
from autofix.logging import configure_logging, get_logger, log_exceptions
from autofix.orchestrator import create_pipeline
from autofix.providers.agent_provider import create_provider
from autofix.text import apply_template, capture_last_delimited_block
from autofix.utils.strings import build_artifact_name

logger = get_logger(__name__)

app = typer.Typer(help="Fix a Rollbar item with a coding agent and open a draft pull request")


def _version_callback(value: bool) -> None:
    """Print the package version when requested."""

    if value:
        typer.echo(f"Rollbar AutoFix {__version__}")
        raise typer.Exit()


@app.callback()
def _main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option(
        "",
        "--log-level",
        help="Set log level (e.g. info, warning, debug). Overrides AUTOFIX_LOG_LEVEL.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Also write JSON logs to this file. Overrides AUTOFIX_LOG_FILE.",
    ),
) -> None:
    """Global callback to wire shared options like --version."""

    configure_logging(log_level or None, log_file=log_file)

    return None


@app.command()
def run(
    item_counter: Optional[str] = typer.Option(None, "--item-counter", help="Rollbar item counter to fix."),
    environment: Optional[str] = typer.Option(None, "--environment", help="Rollbar environment label."),
    language: Optional[str] = typer.Option(None, "--language", help="Primary language of the repository."),
    test_command: Optional[str] = typer.Option(None, "--test-command", help="Shell command that runs the tests."),
    lint_command: Optional[str] = typer.Option(None, "--lint-command", help="Shell command that runs the linters."),
    max_iterations: Optional[str] = typer.Option(None, "--max-iterations", help="Fix attempts the agent may make."),
    pr_base: Optional[str] = typer.Option(None, "--pr-base", help="Base branch for the pull request."),
    agent: Optional[str] = typer.Option(None, "--agent", help="Agent provider (codex or null)."),
    codex_model: Optional[str] = typer.Option(None, "--codex-model", help="Model passed to the Codex CLI."),
    skip_install: bool = typer.Option(
        False, "--skip-install", help="Use the Codex CLI already on PATH instead of installing it."
    ),
    workspace: Optional[Path] = typer.Option(
        None,
        "--workspace",
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
        help="Repository checkout to operate on (defaults to GITHUB_WORKSPACE or cwd).",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="YAML file with default inputs.",
    ),
) -> None:
    """Run the full AutoFix pipeline for one Rollbar item.

    Credentials are read from the action inputs (INPUT_OPENAI_API_KEY,
    INPUT_ROLLBAR_ACCESS_TOKEN, INPUT_GITHUB_TOKEN) or GITHUB_TOKEN.
    """

    overrides = {
        "item_counter": item_counter,
        "environment": environment,
        "language": language,
        "test_command": test_command,
        "lint_command": lint_command,
        "max_iterations": max_iterations,
        "pr_base": pr_base,
        "agent": agent,
        "codex_model": codex_model,
    }
    if skip_install:
        overrides["install_tools"] = False

    try:
        context = RunContext.from_environ(workspace=workspace)
        config_path = config
        if config_path is None and default_config_path(context.workspace).is_file():
            config_path = default_config_path(context.workspace)
        run_config = load_run_config(config_path=config_path, overrides=overrides)
        provider = create_provider(run_config.agent, run_config, context)
    except (AutofixError, ValueError) as exc:
        actions.set_failed(str(exc))
        raise typer.Exit(code=1) from exc

    with log_exceptions(logger, message="AutoFix run crashed"):
        result = create_pipeline(run_config, context, agent=provider).run()
    if not result.success:
        raise typer.Exit(code=1)
    typer.echo(f"AutoFix finished on branch {result.branch_name}")


@app.command()
def extract(
    log_file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
) -> None:
    """Print the last issue description block found in an agent log."""

    content = log_file.read_text(encoding="utf-8", errors="replace")
    typer.echo(capture_last_delimited_block(content))


@app.command()
def render(
    template: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    values: Optional[List[str]] = typer.Argument(None, help="Placeholder values as KEY=VALUE."),
) -> None:
    """Render a template, replacing {{KEY}} placeholders."""

    placeholders = {}
    for entry in values or []:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{entry}'")
        placeholders[key] = value
    typer.echo(apply_template(template.read_text(encoding="utf-8"), placeholders), nl=False)


@app.command("artifact-name")
def artifact_name(
    item_counter: str = typer.Argument(...),
    suffix: Optional[str] = typer.Option(None, "--suffix", help="Uniqueness token such as '<run id>-<attempt>'."),
) -> None:
    """Print the artifact bundle name for an item."""

    typer.echo(build_artifact_name(item_counter, suffix))


def main() -> None:
    """Entry point used by the console script."""

    app()


if __name__ == "__main__":
    main()
