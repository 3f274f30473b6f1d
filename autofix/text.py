"""Text transforms applied to templates and agent output."""

from __future__ import annotations

import re
from typing import Callable, Iterable, Mapping, Optional, TypeVar

ISSUE_DESC_START = "=== ISSUE DESCRIPTION START ==="
ISSUE_DESC_END = "=== ISSUE DESCRIPTION END ==="
ISSUE_DESC_HEADING = "### Issue Description"
ISSUE_DESC_SECTION = "## Issue Description"

_LINE_SPLIT = re.compile(r"\r?\n")

T = TypeVar("T")


def apply_template(template: str, placeholders: Mapping[str, str]) -> str:
    """Replace every literal ``{{KEY}}`` in ``template`` with its mapped value.

    Replacement is literal and non-recursive. Keys missing from the template are
    ignored and placeholders without a mapping are left as they are.
    """

    result = template
    for key, value in placeholders.items():
        result = result.replace(f"{{{{{key}}}}}", str(value))
    return result


def capture_last_delimited_block(
    content: str,
    *,
    start_marker: str = ISSUE_DESC_START,
    end_marker: str = ISSUE_DESC_END,
    heading: str = ISSUE_DESC_HEADING,
) -> str:
    """Return the normalised body of the last complete marker pair in ``content``.

    An unterminated trailing block is ignored. The chosen block loses its
    surrounding blank lines and a leading ``heading`` line (plus the blank lines
    after it).
    """

    search_index = 0
    last_block = ""
    while search_index < len(content):
        start = content.find(start_marker, search_index)
        if start == -1:
            break
        block_start = start + len(start_marker)
        end = content.find(end_marker, block_start)
        if end == -1:
            break
        last_block = content[block_start:end]
        search_index = end + len(end_marker)

    if not last_block:
        return ""

    lines = _LINE_SPLIT.split(last_block)
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    if lines and lines[0].strip() == heading:
        lines.pop(0)
        while lines and not lines[0].strip():
            lines.pop(0)
    return "\n".join(lines)


def remove_section(content: str, heading: str = ISSUE_DESC_SECTION) -> str:
    """Drop the first ``heading`` line and everything up to the next blank line.

    The blank line that ends the section is dropped too. Content without the
    heading comes back unchanged.
    """

    lines = _LINE_SPLIT.split(content)
    result: list[str] = []
    skipping = False
    stripped_once = False
    for line in lines:
        if not skipping and not stripped_once and line.strip() == heading:
            skipping = True
            stripped_once = True
            continue
        if skipping:
            if not line.strip():
                skipping = False
            continue
        result.append(line)
    if not stripped_once:
        return content
    return "\n".join(result)


def first_non_empty(providers: Iterable[Callable[[], Optional[T]]]) -> Optional[T]:
    """Evaluate ``providers`` in order and return the first truthy result."""

    for provider in providers:
        value = provider()
        if value:
            return value
    return None


__all__ = [
    "ISSUE_DESC_END",
    "ISSUE_DESC_HEADING",
    "ISSUE_DESC_SECTION",
    "ISSUE_DESC_START",
    "apply_template",
    "capture_last_delimited_block",
    "first_non_empty",
    "remove_section",
]
