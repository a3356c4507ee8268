import logging
from unittest.mock import Mock

import pytest

from live_proxy.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)


class BrokenStrException(Exception):
    """An exception that breaks when __str__ is called."""

    def __str__(self):
        raise RuntimeError("Cannot convert to string!")

    def __repr__(self):
        return "BrokenStrException(cannot convert to string)"


class BrokenReprException(Exception):
    """An exception that breaks when both __str__ and __repr__ are called."""

    def __str__(self):
        raise RuntimeError("Cannot convert to string!")

    def __repr__(self):
        raise RuntimeError("Cannot convert to repr!")


class MockBrokenExceptionGroup(Exception):
    """Exception group whose sub-exceptions cannot be read."""

    @property
    def exceptions(self):
        raise RuntimeError("Cannot access exceptions!")


@pytest.fixture
def mock_logger():
    return Mock(spec=logging.Logger)


class TestFormatExceptionMessage:
    def test_plain_exception(self):
        assert format_exception_message(ValueError("bad port")) == "bad port"

    def test_none(self):
        assert format_exception_message(None) == "None"

    def test_exception_group_lists_sub_exceptions(self):
        group = ExceptionGroup(
            "relay failed", [ConnectionResetError("peer gone"), TimeoutError("slow")]
        )
        message = format_exception_message(group)
        assert "ConnectionResetError: peer gone" in message
        assert "TimeoutError: slow" in message

    def test_broken_str_falls_back_to_repr(self):
        assert format_exception_message(BrokenStrException()) == (
            "BrokenStrException(cannot convert to string)"
        )

    def test_broken_str_and_repr(self):
        assert "string conversion failed" in format_exception_message(BrokenReprException())

    def test_unreadable_sub_exceptions(self):
        assert format_exception_message(MockBrokenExceptionGroup("group")) == "group"


class TestLogExceptionWithDetails:
    def test_logs_with_prefix_and_traceback(self, mock_logger):
        error = OSError("connection refused")
        log_exception_with_details(mock_logger, "[Proxy]", error)

        mock_logger.log.assert_called_once()
        level, message = mock_logger.log.call_args.args
        assert level == logging.ERROR
        assert message == "[Proxy] Exception: connection refused"
        assert mock_logger.log.call_args.kwargs["exc_info"] is error

    def test_custom_level(self, mock_logger):
        log_exception_with_details(mock_logger, "[StatusChannel]", ValueError("x"), logging.WARNING)
        assert mock_logger.log.call_args.args[0] == logging.WARNING

    def test_each_sub_exception_gets_a_line(self, mock_logger):
        group = ExceptionGroup("two failures", [ValueError("a"), KeyError("b")])
        log_exception_with_details(mock_logger, "[Proxy]", group)

        messages = [c.args[1] for c in mock_logger.log.call_args_list]
        assert len(messages) == 3
        assert "with 2 sub-exceptions" in messages[0]
        assert messages[1].startswith("[Proxy] Sub-exception 1: ValueError")
        assert messages[2].startswith("[Proxy] Sub-exception 2: KeyError")

    def test_never_raises_when_logger_fails(self, mock_logger):
        mock_logger.log.side_effect = RuntimeError("handler broken")
        log_exception_with_details(mock_logger, "[Proxy]", ValueError("x"))

    def test_real_logger_output(self, caplog):
        logger = logging.getLogger("test.exception_logging")
        with caplog.at_level(logging.ERROR, logger=logger.name):
            try:
                raise ConnectionResetError("peer went away")
            except ConnectionResetError as e:
                log_exception_with_details(logger, "[StatusChannel]", e)
        assert "[StatusChannel] Exception: peer went away" in caplog.text
        assert "Traceback" in caplog.text
