import io
import json
import logging
import os
import stat

import pytest

from steamgifts_bot.logsetup import (
    REDACTED,
    account_logger,
    new_logger,
    new_with_file,
    parse_level,
    redact_attrs,
    use_color,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", logging.INFO),
        ("info", logging.INFO),
        ("DEBUG", logging.DEBUG),
        ("warn", logging.WARNING),
        ("warning", logging.WARNING),
        ("error", logging.ERROR),
        ("err", logging.ERROR),
    ],
)
def test_parse_level(text, expected):
    assert parse_level(text) == expected


def test_parse_level_unknown():
    with pytest.raises(ValueError, match="unknown log level"):
        parse_level("bogus")


def test_auto_writes_plain_text_to_buffer():
    buf = io.StringIO()
    logger = new_logger(buf, "info", "auto")
    logger.info("hello", key="value")
    out = buf.getvalue()
    assert "hello" in out
    assert "key=value" in out
    assert "\x1b[" not in out


def test_json_format():
    buf = io.StringIO()
    logger = new_logger(buf, "info", "json")
    logger.info("hello", key="value")
    out = buf.getvalue()
    assert '"msg":"hello"' in out
    assert '"key":"value"' in out


def test_text_format():
    buf = io.StringIO()
    new_logger(buf, "info", "text").info("hello")
    assert "msg=hello" in buf.getvalue()


def test_invalid_format():
    with pytest.raises(ValueError, match="unknown log format"):
        new_logger(None, "info", "xml")


def test_invalid_level():
    with pytest.raises(ValueError):
        new_logger(None, "bogus", "text")


def test_account_child_logger():
    buf = io.StringIO()
    logger = new_logger(buf, "info", "auto")
    account_logger(logger, "alt").info("hi")
    assert "account=alt" in buf.getvalue()


def test_level_filters_records():
    buf = io.StringIO()
    logger = new_logger(buf, "warn", "text")
    logger.info("quiet")
    logger.warning("loud")
    out = buf.getvalue()
    assert "quiet" not in out
    assert "level=WARN" in out


def test_text_quotes_values_with_spaces():
    buf = io.StringIO()
    new_logger(buf, "info", "text").info("two words", note="a b")
    out = buf.getvalue()
    assert 'msg="two words"' in out
    assert 'note="a b"' in out


def test_with_group_nests_json():
    buf = io.StringIO()
    logger = new_logger(buf, "info", "json").with_group("auth")
    logger.info("login", user="alice")
    record = json.loads(buf.getvalue())
    assert record["auth"] == {"user": "alice"}


def test_colored_output_on_tty(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm")

    class FakeTTY(io.StringIO):
        def isatty(self):
            return True

    stream = FakeTTY()
    new_logger(stream, "info", "auto").info("hello", key="value")
    assert "\x1b[" in stream.getvalue()
    assert "hello" in stream.getvalue()


def test_use_color_non_terminal():
    assert use_color(io.StringIO()) is False


def test_use_color_with_no_color_env(monkeypatch, tmp_path):
    monkeypatch.setenv("NO_COLOR", "1")
    with open(tmp_path / "f", "w") as fh:
        assert use_color(fh) is False


def test_use_color_dumb_terminal(monkeypatch, tmp_path):
    monkeypatch.setenv("NO_COLOR", "")
    monkeypatch.setenv("TERM", "dumb")
    with open(tmp_path / "f", "w") as fh:
        assert use_color(fh) is False


@pytest.mark.parametrize(
    "key, expected",
    [
        ("cookie", REDACTED),
        ("password", REDACTED),
        ("token", REDACTED),
        ("xsrf_token", REDACTED),
        ("webhook", REDACTED),
        ("proxy", REDACTED),
        ("secret", REDACTED),
        ("Cookie", REDACTED),
        ("safe_key", "value"),
    ],
)
def test_redact_attrs(key, expected):
    assert redact_attrs({key: "value"}) == {key: expected}


def test_redacted_placeholder_text():
    assert redact_attrs({"cookie": "value"})["cookie"] == "***REDACTED***"


def test_new_with_file_creates_file_and_logs(tmp_path, capsys):
    log_path = tmp_path / "test.log"
    logger = new_with_file("debug", "text", log_path)
    try:
        logger.info("test message", key="value")
    finally:
        logger.close()
    content = log_path.read_text()
    assert "test message" in content
    assert '"msg"' in content
    assert "test message" in capsys.readouterr().err


def test_new_with_file_redacts_sensitive_keys(tmp_path, capsys):
    log_path = tmp_path / "test.log"
    password = "password"
    logger = new_with_file("debug", "text", log_path)
    try:
        logger.info("auth", cookie="secret", password=password)
    finally:
        logger.close()
    record = json.loads(log_path.read_text().splitlines()[0])
    assert record["cookie"] == REDACTED
    assert record["password"] == REDACTED
    # The console output is not redacted.
    assert "cookie=secret" in capsys.readouterr().err


def test_new_with_file_redacts_bound_attrs(tmp_path, capsys):
    log_path = tmp_path / "test.log"
    logger = new_with_file("debug", "json", log_path)
    try:
        logger.bind(cookie="secret").info("test")
    finally:
        logger.close()
    record = json.loads(log_path.read_text().splitlines()[0])
    assert record["cookie"] == REDACTED
    assert record["msg"] == "test"


def test_new_with_file_group_preserved(tmp_path, capsys):
    log_path = tmp_path / "test.log"
    logger = new_with_file("debug", "text", log_path)
    try:
        logger.with_group("auth").info("login", user="alice")
    finally:
        logger.close()
    record = json.loads(log_path.read_text().splitlines()[0])
    assert record["auth"] == {"user": "alice"}


def test_new_with_file_fans_out_attrs_and_groups(tmp_path, capsys):
    log_path = tmp_path / "test.log"
    logger = new_with_file("info", "text", log_path)
    try:
        logger.bind(env="test").info("ping")
        logger.with_group("req").info("hit", path="/foo")
    finally:
        logger.close()
    err = capsys.readouterr().err
    assert "env=test" in err
    assert "req.path=/foo" in err
    lines = [json.loads(line) for line in log_path.read_text().splitlines()]
    assert lines[0]["env"] == "test"
    assert lines[1]["req"] == {"path": "/foo"}


def test_new_with_file_invalid_level(tmp_path):
    with pytest.raises(ValueError):
        new_with_file("bogus", "text", tmp_path / "test.log")


def test_new_with_file_invalid_format(tmp_path):
    log_path = tmp_path / "test.log"
    with pytest.raises(ValueError):
        new_with_file("info", "xml", log_path)
    assert not log_path.exists()


def test_new_with_file_honors_info_level(tmp_path, capsys):
    log_path = tmp_path / "test.log"
    logger = new_with_file("info", "text", log_path)
    try:
        logger.debug("debug noise", k="v")
        logger.info("info kept", k="v")
    finally:
        logger.close()
    content = log_path.read_text()
    assert "debug noise" not in content
    assert "info kept" in content


def test_new_with_file_restrictive_permissions(tmp_path):
    log_path = tmp_path / "nested" / "test.log"
    logger = new_with_file("info", "json", log_path)
    logger.close()
    assert stat.S_IMODE(os.stat(log_path).st_mode) == 0o600