"""Tests for JSON logging setup."""
import json
import logging
import warnings

from pythonjsonlogger.json import JsonFormatter

from sermon_relay.core.logging import setup_logging


def test_setup_logging_emits_json_without_deprecation_warnings(capsys):
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        root = setup_logging("INFO")

    assert isinstance(root.handlers[0].formatter, JsonFormatter)

    logging.getLogger("sermon_relay.test").info("Room created", extra={"room_code": "ABC12345"})
    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)

    assert record["message"] == "Room created"
    assert record["room_code"] == "ABC12345"
    assert record["levelname"] == "INFO"
