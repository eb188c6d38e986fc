"""
Tests for the structured logging helpers.
"""

import logging

import structlog

from utilities.logger import (
    bind_request_context, clear_request_context, get_logger, setup_logging
)


def test_bind_request_context_generates_id():
    request_id = bind_request_context("GET", "/books/get_by_rating/4")
    try:
        context = structlog.contextvars.get_contextvars()
        assert context == {"request_id": request_id, "method": "GET", "path": "/books/get_by_rating/4"}
        assert len(request_id) == 32
    finally:
        clear_request_context()


def test_bind_request_context_keeps_incoming_id():
    request_id = bind_request_context("DELETE", "/books/delete_by_range/1990/2000", request_id="req-1")
    try:
        assert request_id == "req-1"
    finally:
        clear_request_context()
    assert structlog.contextvars.get_contextvars() == {}


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "api.log"
    root_logger = logging.getLogger()
    handlers_before = list(root_logger.handlers)
    try:
        setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))
        get_logger("books").info("Books deleted by publication range", deleted=2)
        assert log_file.exists()
        assert "Books deleted by publication range" in log_file.read_text()
    finally:
        for handler in root_logger.handlers:
            if handler not in handlers_before:
                handler.close()
                root_logger.removeHandler(handler)
        structlog.reset_defaults()
