import importlib
import json
import logging

import pytest

import autofix.logging as logging_module
from autofix.logging import log_exceptions


@pytest.fixture(autouse=True)
def _reload_logging_module(monkeypatch):
    monkeypatch.delenv("AUTOFIX_LOG_FILE", raising=False)
    monkeypatch.delenv("AUTOFIX_LOG_LEVEL", raising=False)
    importlib.reload(logging_module)
    yield
    for handler in list(logging.getLogger("autofix").handlers):
        handler.close()
    importlib.reload(logging_module)


def test_configure_logging_writes_json(tmp_path):
    log_file = tmp_path / "logs" / "autofix.log"
    logging_module.configure_logging(level="info", log_file=log_file)
    logger = logging_module.get_logger("tests.logging")
    logger.info("structured message", extra={"metadata": {"key": "value"}})
    for handler in logging.getLogger("autofix").handlers:
        handler.flush()

    contents = log_file.read_text(encoding="utf-8").strip().splitlines()
    payload = json.loads(contents[-1])
    assert payload["message"] == "structured message"
    assert payload["metadata"]["key"] == "value"
    assert payload["level"] == "INFO"
    assert payload["component"] == "autofix.tests.logging"


def test_no_file_sink_without_explicit_target(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    logging_module.configure_logging(level="debug")
    logging_module.get_logger("tests.console").info("console only")

    handlers = logging.getLogger("autofix").handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.StreamHandler)
    assert list(tmp_path.iterdir()) == []


def test_registered_secrets_are_redacted_from_log_file(tmp_path):
    log_file = tmp_path / "autofix.log"
    logging_module.configure_logging(level="info", log_file=log_file)
    logging_module.register_secret("ghp_supersecret")
    logger = logging_module.get_logger("tests.secrets")

    logger.info("pushing with token %s", "ghp_supersecret")
    for handler in logging.getLogger("autofix").handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "ghp_supersecret" not in text
    assert "pushing with token ***" in text


def test_redact_masks_longest_secret_first():
    logging_module.register_secret("abc")
    logging_module.register_secret("abcdef")

    assert logging_module.redact("token=abcdef") == "token=***"
    assert logging_module.redact("") == ""


def _propagating_logger(name):
    base_logger = logging.getLogger("autofix")
    previous = base_logger.propagate
    base_logger.propagate = True
    return logging_module.get_logger(name), base_logger, previous


def test_log_action_decorator_logs_success(caplog):
    logging_module.configure_logging()
    logger, base_logger, previous = _propagating_logger("tests.actions")
    caplog.set_level("INFO", logger=logger.name)

    @logging_module.log_action("sample-action", logger_factory=lambda: logger)
    def _run():
        return "ok"

    try:
        assert _run() == "ok"
    finally:
        base_logger.propagate = previous
    assert "sample-action:start" in caplog.text
    assert "sample-action:success" in caplog.text


def test_log_action_decorator_logs_failure(caplog):
    logging_module.configure_logging()
    logger, base_logger, previous = _propagating_logger("tests.failures")
    caplog.set_level("INFO", logger=logger.name)

    @logging_module.log_action("broken-step", logger_factory=lambda: logger)
    def _run():
        raise ValueError("nope")

    try:
        with pytest.raises(ValueError):
            _run()
    finally:
        base_logger.propagate = previous
    assert "broken-step:error" in caplog.text
    assert "broken-step:success" not in caplog.text


def test_log_exceptions_records_errors(caplog):
    logging_module.configure_logging()
    logger, base_logger, previous = _propagating_logger("tests.exceptions")
    caplog.set_level("ERROR", logger=logger.name)

    try:
        with pytest.raises(RuntimeError):
            with log_exceptions(logger):
                raise RuntimeError("boom")
    finally:
        base_logger.propagate = previous

    assert "Unhandled error" in caplog.text
