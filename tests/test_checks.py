import subprocess

from autofix.pipelines.checks import run_post_checks, run_shell_command


def _init_repo(path):
    subprocess.run(["git", "init", "-q"], cwd=path, check=True)
    subprocess.run(["git", "config", "user.email", "dev@example.com"], cwd=path, check=True)
    subprocess.run(["git", "config", "user.name", "Dev"], cwd=path, check=True)
    (path / "app.py").write_text("value = 1\n", encoding="utf-8")
    subprocess.run(["git", "add", "app.py"], cwd=path, check=True)
    subprocess.run(["git", "commit", "-q", "-m", "init"], cwd=path, check=True)


def test_run_shell_command_captures_both_streams(tmp_path):
    log_path = tmp_path / "out.log"

    code = run_shell_command("echo out; echo err 1>&2; exit 4", tmp_path, log_path)

    assert code == 4
    content = log_path.read_text(encoding="utf-8")
    assert "out" in content
    assert "err" in content


def test_post_checks_record_failures_without_raising(tmp_path):
    _init_repo(tmp_path)
    (tmp_path / "app.py").write_text("value = 2\n", encoding="utf-8")
    lint_log = tmp_path / "_lint.log"
    test_log = tmp_path / "_test.log"
    diff_path = tmp_path / "_diff.patch"

    report = run_post_checks(
        "echo lint-ok",
        "echo failing; exit 1",
        cwd=tmp_path,
        lint_log=lint_log,
        test_log=test_log,
        diff_path=diff_path,
    )

    assert report.lint_exit_code == 0
    assert report.test_exit_code == 1
    assert not report.passed
    assert "lint-ok" in lint_log.read_text(encoding="utf-8")
    assert "failing" in test_log.read_text(encoding="utf-8")
    assert "+value = 2" in report.diff
    assert diff_path.read_text(encoding="utf-8") == report.diff


def test_post_checks_skip_blank_commands(tmp_path):
    _init_repo(tmp_path)
    lint_log = tmp_path / "_lint.log"
    test_log = tmp_path / "_test.log"

    report = run_post_checks(
        "",
        "",
        cwd=tmp_path,
        lint_log=lint_log,
        test_log=test_log,
        diff_path=tmp_path / "_diff.patch",
    )

    assert report.lint_exit_code is None
    assert report.test_exit_code is None
    assert report.passed
    assert report.diff == ""
    assert lint_log.read_text(encoding="utf-8") == ""
    assert test_log.read_text(encoding="utf-8") == ""
