import json

from autofix.artifacts import DirectoryArtifactUploader, upload_artifacts


def test_directory_uploader_copies_files_with_manifest(tmp_path):
    root = tmp_path / "repo"
    (root / "scripts").mkdir(parents=True)
    summary = root / "_autofix_summary.md"
    summary.write_text("summary", encoding="utf-8")
    repro = root / "scripts" / "autofix_repro.sh"
    repro.write_text("echo repro", encoding="utf-8")
    uploader = DirectoryArtifactUploader(tmp_path / "staging")

    result = upload_artifacts(uploader, "autofix-1-artifacts", [summary, repro], root)

    bundle = tmp_path / "staging" / "autofix-1-artifacts"
    assert result is not None
    assert result.location == bundle
    assert (bundle / "scripts" / "autofix_repro.sh").read_text(encoding="utf-8") == "echo repro"
    manifest = json.loads((bundle / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["retention_days"] == 7
    assert manifest["files"] == ["_autofix_summary.md", "scripts/autofix_repro.sh"]


def test_upload_failure_is_only_a_warning(tmp_path, capsys):
    root = tmp_path / "repo"
    root.mkdir()
    log = root / "codex_exec.log"
    log.write_text("log", encoding="utf-8")
    uploader = DirectoryArtifactUploader(tmp_path / "staging")
    (tmp_path / "staging" / "taken").mkdir(parents=True)

    result = upload_artifacts(uploader, "taken", [log], root)

    assert result is None
    assert "::warning::Artifact upload failed for taken" in capsys.readouterr().out


def test_nothing_to_upload(tmp_path):
    class _ExplodingUploader:
        def upload(self, name, files, root):
            raise AssertionError("should not be called")

    assert upload_artifacts(_ExplodingUploader(), "empty", [], tmp_path) is None
