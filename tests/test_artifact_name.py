import re

import pytest

from autofix.utils.strings import (
    MAX_ARTIFACT_NAME_LENGTH,
    build_artifact_name,
    build_branch_name,
    sanitize_identifier,
)

NAME_PATTERN = re.compile(r"^autofix-[A-Za-z0-9_-]+-artifacts$")


def test_sanitize_identifier_collapses_and_trims_dashes():
    assert sanitize_identifier("  a b//c--d!  ") == "a-b-c-d"
    assert sanitize_identifier("@@@") == ""
    assert sanitize_identifier(None) == ""


def test_sanitizes_and_truncates_long_counter():
    long_counter = "problematic counter! with spaces and symbols @@@ longer than allowed length"
    name = build_artifact_name(long_counter)

    assert name.startswith("autofix-")
    assert name.endswith("-artifacts")
    assert len(name) <= MAX_ARTIFACT_NAME_LENGTH
    assert " " not in name
    assert NAME_PATTERN.match(name)


def test_appends_unique_suffix_when_it_fits():
    assert build_artifact_name("item-123", "987654321-2") == "autofix-item-123-987654321-2-artifacts"


def test_preserves_tail_of_truncated_suffix():
    long_suffix = "run-" + "x" * 100 + "-42"
    name = build_artifact_name("counter", long_suffix)

    assert name.startswith("autofix-")
    assert name.endswith("x-42-artifacts")
    assert len(name) <= MAX_ARTIFACT_NAME_LENGTH
    assert NAME_PATTERN.match(name)


def test_counter_shrinks_before_suffix():
    name = build_artifact_name("c" * 60, "12345-1")
    assert name.endswith("-12345-1-artifacts")
    assert len(name) == MAX_ARTIFACT_NAME_LENGTH


def test_empty_counter_falls_back_to_item():
    assert build_artifact_name("!!!") == "autofix-item-artifacts"
    assert build_artifact_name("", "7-1") == "autofix-item-7-1-artifacts"


def test_suffix_that_sanitizes_to_nothing_is_ignored():
    assert build_artifact_name("42", "///") == "autofix-42-artifacts"


def test_degenerate_length_budget_uses_fallback():
    assert build_artifact_name("anything", "1-1", max_length=10) == "autofix-item-artifacts"


@pytest.mark.parametrize(
    "counter, suffix",
    [
        ("a" * 200, None),
        ("a" * 200, "b" * 200),
        ("--a--", "--b--"),
        ("ü ñ ç", "run id 5"),
        ("x", "-" * 80 + "9"),
    ],
)
def test_length_and_charset_invariants(counter, suffix):
    name = build_artifact_name(counter, suffix)
    assert len(name) <= MAX_ARTIFACT_NAME_LENGTH
    assert NAME_PATTERN.match(name)
    assert "--" not in name[len("autofix-") : -len("-artifacts")]


def test_branch_name_uses_run_id_or_manual():
    assert build_branch_name("123", "987") == "autofix/rollbar-item-123-987"
    assert build_branch_name("123") == "autofix/rollbar-item-123-manual"
