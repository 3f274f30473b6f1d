"""Locate and render the agent prompt and pull-request templates."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

from autofix.config import OVERRIDE_DIR, RunConfig
from autofix.errors import TemplateNotFoundError
from autofix.logging import get_logger
from autofix.text import ISSUE_DESC_SECTION, apply_template, first_non_empty, remove_section

logger = get_logger(__name__)

PROMPT_TEMPLATE = "prompt.md"
PR_TEMPLATE = "pr-template.md"


def _existing(path: Path) -> Optional[Path]:
    return path if path.is_file() else None


def resolve_template_path(workspace: Path, template_dir: Path, filename: str) -> Path:
    """Prefer the repository's override, then the bundled template."""

    override_path = workspace / OVERRIDE_DIR / filename
    default_path = template_dir / filename
    resolved = first_non_empty(
        [
            lambda: _existing(override_path),
            lambda: _existing(default_path),
        ]
    )
    if resolved is None:
        raise TemplateNotFoundError(filename, default_path)
    logger.debug("Using %s template at %s", filename, resolved)
    return resolved


def render_template_file(path: Path, placeholders: Mapping[str, str]) -> str:
    return apply_template(path.read_text(encoding="utf-8"), placeholders)


def render_prompt(template_path: Path, config: RunConfig) -> str:
    return render_template_file(template_path, config.placeholders())


def render_summary(template_path: Path, config: RunConfig, issue_description: str) -> str:
    """Render the PR body, omitting the issue section when nothing was found."""

    placeholders = {"ISSUE_DESCRIPTION": issue_description, **config.placeholders()}
    rendered = render_template_file(template_path, placeholders)
    if not issue_description.strip():
        rendered = remove_section(rendered, ISSUE_DESC_SECTION)
    return rendered


__all__ = [
    "PROMPT_TEMPLATE",
    "PR_TEMPLATE",
    "render_prompt",
    "render_summary",
    "render_template_file",
    "resolve_template_path",
]
