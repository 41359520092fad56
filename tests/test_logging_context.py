"""Tests for callback-scoped log tagging."""

import logging

import pytest

from callback_queue.logging_context import (
    NO_CALLBACK,
    CallbackIdFilter,
    callback_scope,
    get_callback_id,
    get_callback_logger,
    install_callback_filter,
)


class TestCallbackScope:
    def test_default_outside_scope(self):
        assert get_callback_id() == NO_CALLBACK

    def test_scope_sets_and_resets(self):
        with callback_scope("cb-1"):
            assert get_callback_id() == "cb-1"
            with callback_scope("cb-2"):
                assert get_callback_id() == "cb-2"
            assert get_callback_id() == "cb-1"
        assert get_callback_id() == NO_CALLBACK

    def test_scope_resets_on_error(self):
        with pytest.raises(RuntimeError):
            with callback_scope("cb-9"):
                raise RuntimeError("boom")
        assert get_callback_id() == NO_CALLBACK


class TestFilters:
    def test_logger_records_carry_callback_id(self, caplog):
        logger = get_callback_logger("tests.scoped")
        with caplog.at_level(logging.INFO, logger="tests.scoped"):
            with callback_scope("cb-42"):
                logger.info("inside")
            logger.info("outside")
        ids = [r.callback_id for r in caplog.records if r.name == "tests.scoped"]
        assert ids == ["cb-42", NO_CALLBACK]

    def test_filter_attached_once(self):
        logger = get_callback_logger("tests.once")
        get_callback_logger("tests.once")
        assert sum(isinstance(f, CallbackIdFilter) for f in logger.filters) == 1

    def test_install_on_handlers(self):
        logger = logging.getLogger("tests.handlers")
        handler = logging.NullHandler()
        logger.addHandler(handler)
        try:
            install_callback_filter(logger)
            install_callback_filter(logger)
            assert sum(isinstance(f, CallbackIdFilter) for f in handler.filters) == 1
        finally:
            logger.removeHandler(handler)

    def test_existing_attribute_kept(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        record.callback_id = "explicit"
        with callback_scope("cb-1"):
            CallbackIdFilter().filter(record)
        assert record.callback_id == "explicit"
