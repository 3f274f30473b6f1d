from autofix.workspace import (
    ARTIFACT_ENTRIES,
    CLEANUP_ENTRIES,
    EXCLUDED_ENTRIES,
    ScratchFiles,
)


def test_exclusion_registry_covers_every_scratch_entry():
    assert "_autofix_pr_title.txt" in EXCLUDED_ENTRIES
    assert "_autofix_pr_body.md" in EXCLUDED_ENTRIES
    assert "scripts/autofix_repro.sh" not in CLEANUP_ENTRIES
    assert set(ARTIFACT_ENTRIES) <= set(EXCLUDED_ENTRIES)
    assert set(CLEANUP_ENTRIES) <= set(EXCLUDED_ENTRIES)
    assert len(EXCLUDED_ENTRIES) == len(set(EXCLUDED_ENTRIES))
    for entry in ("codex_exec.log", "_item_raw.json", "_mcp_err.log", "AUTOFIX_PLAN.md", ".mcp.json", ".autofix_mcp"):
        assert entry in EXCLUDED_ENTRIES


def test_append_excludes_adds_anchored_patterns(tmp_path):
    scratch = ScratchFiles(tmp_path)
    info = tmp_path / ".git" / "info"
    info.mkdir(parents=True)
    (info / "exclude").write_text("# local\n*.swp", encoding="utf-8")

    scratch.append_excludes(["_diff.patch", "scripts/autofix_repro.sh"])

    content = (info / "exclude").read_text(encoding="utf-8")
    assert content == "# local\n*.swp\n/_diff.patch\n/scripts/autofix_repro.sh\n"


def test_append_excludes_skips_patterns_already_listed(tmp_path):
    scratch = ScratchFiles(tmp_path)

    scratch.append_excludes(["_lint.log", "_test.log"])
    scratch.append_excludes(["_test.log", "codex_exec.log"])
    scratch.append_excludes(["_lint.log", "codex_exec.log"])

    content = scratch.exclude_file.read_text(encoding="utf-8")
    assert content == "/_lint.log\n/_test.log\n/codex_exec.log\n"


def test_existing_lists_present_artifacts_in_registry_order(tmp_path):
    scratch = ScratchFiles(tmp_path)
    scratch.test_log.write_text("ok", encoding="utf-8")
    scratch.summary.write_text("summary", encoding="utf-8")
    scratch.repro_script.parent.mkdir()
    scratch.repro_script.write_text("#!/bin/bash\n", encoding="utf-8")

    assert scratch.existing() == [scratch.summary, scratch.test_log, scratch.repro_script]


def test_cleanup_removes_files_and_directories_and_keeps_the_rest(tmp_path):
    scratch = ScratchFiles(tmp_path)
    scratch.agent_log.write_text("log", encoding="utf-8")
    scratch.title.write_text("title", encoding="utf-8")
    mcp_dir = tmp_path / ".autofix_mcp"
    (mcp_dir / "nested").mkdir(parents=True)
    (mcp_dir / "nested" / "state.json").write_text("{}", encoding="utf-8")
    (tmp_path / "app.py").write_text("print('fixed')\n", encoding="utf-8")
    plan = tmp_path / "AUTOFIX_PLAN.md"
    plan.write_text("plan", encoding="utf-8")

    removed = scratch.cleanup()

    assert set(removed) == {mcp_dir, scratch.agent_log, scratch.title}
    assert not mcp_dir.exists()
    assert (tmp_path / "app.py").exists()
    assert plan.exists()
    assert scratch.cleanup() == []
