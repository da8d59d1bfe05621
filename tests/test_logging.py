#!/usr/bin/env python3
"""Tests for structured logging helpers."""

import json
import logging

import pytest
import structlog

from vboxorm.config import VBoxSettings
from vboxorm.logging import configure_logging, get_logger, log_context, log_operation


@pytest.fixture
def reset_logging():
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root.removeHandler(handler)


class TestLogging:
    def test_json_log_file(self, tmp_path, reset_logging):
        log_file = tmp_path / "vboxorm.log"
        configure_logging(level="DEBUG", log_file=log_file, console_output=False)
        get_logger("vboxorm.test").info("guest_property.saved", key="/Foo/Bar")
        logging.getLogger().handlers[0].flush()

        record = json.loads(log_file.read_text().splitlines()[-1])
        assert record["event"] == "guest_property.saved"
        assert record["key"] == "/Foo/Bar"
        assert record["level"] == "info"

    def test_settings_configure_logging(self, tmp_path, reset_logging):
        log_file = tmp_path / "vboxorm.log"
        VBoxSettings(log_level="warning").configure_logging(log_file=log_file)
        assert logging.getLogger().level == logging.WARNING

    def test_log_operation_reraises(self):
        log = get_logger("vboxorm.test")
        with pytest.raises(KeyError):
            with log_operation(log, "guest_property.save", vm="test-vm"):
                raise KeyError("/Foo/Bar")

    def test_log_operation_yields_bound_logger(self):
        log = get_logger("vboxorm.test")
        with log_operation(log, "forwarded_port.save", vm="test-vm") as bound:
            assert bound is not None


def _records(log_file):
    logging.getLogger().handlers[0].flush()
    return [json.loads(line) for line in log_file.read_text().splitlines()]


class TestLogContext:
    def test_log_operation_binds_context_for_nested_events(self, tmp_path, reset_logging):
        log_file = tmp_path / "vboxorm.log"
        configure_logging(level="DEBUG", log_file=log_file, console_output=False)
        with log_operation(get_logger("vboxorm.test"), "guest_property.save", vm="test-vm"):
            get_logger("vboxorm.backends.vboxmanage").debug("vboxmanage.run")
        get_logger("vboxorm.test").info("after")

        records = {record["event"]: record for record in _records(log_file)}
        assert records["vboxmanage.run"]["vm"] == "test-vm"
        assert records["guest_property.save.completed"]["vm"] == "test-vm"
        assert records["guest_property.save.completed"]["operation"] == "guest_property.save"
        assert "vm" not in records["after"]

    def test_failed_operation_carries_context(self, tmp_path, reset_logging):
        log_file = tmp_path / "vboxorm.log"
        configure_logging(level="DEBUG", log_file=log_file, console_output=False)
        with pytest.raises(KeyError):
            with log_operation(get_logger("vboxorm.test"), "guest_property.save", vm="test-vm"):
                raise KeyError("/Foo/Bar")

        records = {record["event"]: record for record in _records(log_file)}
        assert records["guest_property.save.failed"]["vm"] == "test-vm"
        assert records["guest_property.save.failed"]["error_type"] == "KeyError"

    def test_store_save_tags_each_write_with_vm_and_key(
        self, store, tmp_path, reset_logging
    ):
        log_file = tmp_path / "vboxorm.log"
        configure_logging(level="DEBUG", log_file=log_file, console_output=False)
        store["/Foo/Bar"] = "no"
        store.save()

        written = [r for r in _records(log_file) if r["event"] == "guest_property.written"]
        assert len(written) == 1
        assert written[0]["vm"] == "test-vm"
        assert written[0]["key"] == "/Foo/Bar"
        assert written[0]["value"] == "no"

    def test_log_context_is_removed_after_block(self, tmp_path, reset_logging):
        log_file = tmp_path / "vboxorm.log"
        configure_logging(level="INFO", log_file=log_file, console_output=False)
        with log_context(key="/Foo/Bar"):
            get_logger("vboxorm.test").info("inside")
        get_logger("vboxorm.test").info("outside")

        records = {record["event"]: record for record in _records(log_file)}
        assert records["inside"]["key"] == "/Foo/Bar"
        assert "key" not in records["outside"]
