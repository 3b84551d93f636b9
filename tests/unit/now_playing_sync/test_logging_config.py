"""Unit tests for logging helpers."""

import json
import logging

import pytest

from now_playing_sync.logging_config import log_with_context, redact_sensitive_data, setup_logging


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        (
            "https://accounts.spotify.com/api/token?refresh_token=abc123&grant_type=refresh_token",
            "https://accounts.spotify.com/api/token?refresh_token=***REDACTED***&grant_type=refresh_token",
        ),
        (
            "https://example.com/cb?code=xyz&state=1",
            "https://example.com/cb?code=***REDACTED***&state=1",
        ),
        ("https://discord.com/api/v10/channels/1/messages", "https://discord.com/api/v10/channels/1/messages"),
    ],
)
def test_redact_sensitive_data(url, expected):
    assert redact_sensitive_data(url) == expected


def test_json_log_file_carries_context(tmp_path):
    root = setup_logging("DEBUG", log_dir=tmp_path)
    try:
        log_with_context(logging.getLogger("now_playing_sync.test"), "info", "Posted", message_id="1001")
        for handler in root.handlers:
            handler.flush()

        lines = (tmp_path / "now_playing_sync.log").read_text(encoding="utf-8").splitlines()
        record = json.loads(lines[-1])
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        root.setLevel(logging.WARNING)

    assert record["message"] == "Posted"
    assert record["message_id"] == "1001"
    assert record["levelname"] == "INFO"
