"""Identifier helpers used for branch and artifact names."""

from __future__ import annotations

import re
from typing import Optional

__all__ = [
    "ARTIFACT_NAME_PREFIX",
    "ARTIFACT_NAME_SUFFIX",
    "MAX_ARTIFACT_NAME_LENGTH",
    "build_artifact_name",
    "build_branch_name",
    "sanitize_identifier",
]


ARTIFACT_NAME_PREFIX = "autofix-"
ARTIFACT_NAME_SUFFIX = "-artifacts"
MAX_ARTIFACT_NAME_LENGTH = 64
BRANCH_PREFIX = "autofix/rollbar-item-"

_FALLBACK = "item"
_INVALID_CHARS_PATTERN = re.compile(r"[^A-Za-z0-9_-]")
_DASH_RUN_PATTERN = re.compile(r"-+")


def sanitize_identifier(value: Optional[str]) -> str:
    """Map ``value`` onto ``[A-Za-z0-9_-]`` with single, non-edge dashes."""

    text = str(value or "")
    collapsed = _INVALID_CHARS_PATTERN.sub("-", text)
    collapsed = _DASH_RUN_PATTERN.sub("-", collapsed)
    return collapsed.strip("-")


def build_artifact_name(
    item_counter: str,
    unique_suffix: Optional[str] = None,
    *,
    prefix: str = ARTIFACT_NAME_PREFIX,
    suffix: str = ARTIFACT_NAME_SUFFIX,
    max_length: int = MAX_ARTIFACT_NAME_LENGTH,
) -> str:
    """Return an artifact name that fits the storage naming rules.

    The result is ``<prefix><body><suffix>`` and never longer than
    ``max_length``. When ``unique_suffix`` is given (typically a run id and
    attempt) its rightmost characters survive truncation, since that is where
    consecutive run ids differ.
    """

    counter = sanitize_identifier(item_counter) or _FALLBACK

    available = max_length - len(prefix) - len(suffix)
    if available <= 0:
        return f"{prefix}{_FALLBACK}{suffix}"

    if not unique_suffix:
        body = counter[:available].rstrip("-") or _FALLBACK
        return f"{prefix}{body}{suffix}"

    token = sanitize_identifier(unique_suffix)
    if len(token) > available:
        token = token[-available:]

    remaining = available - len(token) - (1 if counter else 0)
    truncated_counter = counter[:remaining].rstrip("-") if remaining > 0 else ""

    if truncated_counter and token:
        body = f"{truncated_counter}-{token}"
    else:
        body = truncated_counter or token or _FALLBACK

    if len(body) > available:
        body = body[-available:]
    body = body.strip("-") or _FALLBACK

    return f"{prefix}{body}{suffix}"


def build_branch_name(item_counter: str, run_id: Optional[str] = None) -> str:
    """Return the working branch for an item, stable within one workflow run."""

    counter = sanitize_identifier(item_counter) or _FALLBACK
    run_token = sanitize_identifier(run_id) or "manual"
    return f"{BRANCH_PREFIX}{counter}-{run_token}"
