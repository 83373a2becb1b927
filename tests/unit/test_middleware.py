"""
Unit tests for the middleware pipeline and command logging.
"""

import json
import logging
import time

import pytest

from fluxdb.middleware import (
    CommandLoggingMiddleware,
    FunctionMiddleware,
    Middleware,
    MiddlewarePipeline,
    function_middleware,
)
from fluxdb.protocol import BulkString, Command, Error, OK


LOGGER_NAME = "fluxdb.commands.log"


def make_command(*tokens: str) -> Command:
    command = Command(list(tokens))
    command.client_address = ("127.0.0.1", 50000)
    return command


def final_handler(command: Command):
    return OK


class Recorder(Middleware):
    def __init__(self, label: str, calls: list):
        self.label = label
        self.calls = calls

    def __call__(self, command, next):
        self.calls.append(f"{self.label}:before")
        reply = next(command)
        self.calls.append(f"{self.label}:after")
        return reply


class TestMiddlewarePipeline:

    def test_empty_pipeline_calls_handler(self):
        handler = MiddlewarePipeline().wrap(final_handler)
        assert handler(make_command("PING")) == OK

    def test_first_added_is_outermost(self):
        calls = []
        pipeline = MiddlewarePipeline()
        pipeline.add(Recorder("outer", calls)).add(Recorder("inner", calls))

        pipeline.wrap(final_handler)(make_command("PING"))

        assert calls == ["outer:before", "inner:before", "inner:after", "outer:after"]

    def test_short_circuit(self):
        @function_middleware
        def deny(command, next):
            if command.name == "SET":
                return Error("ERR read only")
            return next(command)

        handler = MiddlewarePipeline().use(deny).wrap(final_handler)

        assert handler(make_command("SET", "k", "v")) == Error("ERR read only")
        assert handler(make_command("GET", "k")) == OK

    def test_function_middleware_name(self):
        def my_filter(command, next):
            return next(command)

        assert FunctionMiddleware(my_filter).name == "my_filter"
        assert len(MiddlewarePipeline().use(FunctionMiddleware(my_filter))) == 1


class TestCommandLoggingMiddleware:

    def test_text_record(self, caplog):
        handler = MiddlewarePipeline().add(CommandLoggingMiddleware()).wrap(final_handler)

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            handler(make_command("SET", "secret-key", "secret-value"))

        record = caplog.records[-1]
        assert record.name == LOGGER_NAME
        assert "127.0.0.1:50000" in record.getMessage()
        assert "SET argc=2 -> simple" in record.getMessage()

    def test_argument_values_are_never_logged(self, caplog):
        for log_format in ("text", "json"):
            handler = MiddlewarePipeline().add(
                CommandLoggingMiddleware(log_format=log_format)
            ).wrap(final_handler)

            with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
                handler(make_command("SET", "secret-key", "secret-value"))

        assert "secret" not in caplog.text

    def test_json_record(self, caplog):
        handler = MiddlewarePipeline().add(
            CommandLoggingMiddleware(log_format="json")
        ).wrap(lambda command: BulkString("v"))

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            handler(make_command("GET", "k"))

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["command"] == "GET"
        assert entry["argc"] == 1
        assert entry["reply"] == "bulk"
        assert entry["client"] == "127.0.0.1:50000"
        assert "duration_ms" in entry

    def test_slow_command_logs_warning(self, caplog):
        def slow_handler(command):
            time.sleep(0.02)
            return OK

        handler = MiddlewarePipeline().add(
            CommandLoggingMiddleware(slowlog_threshold_ms=1)
        ).wrap(slow_handler)

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            handler(make_command("PING"))

        assert caplog.records[-1].levelno == logging.WARNING

    def test_skip_commands(self, caplog):
        handler = MiddlewarePipeline().add(
            CommandLoggingMiddleware(skip_commands=["ping"])
        ).wrap(final_handler)

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            handler(make_command("PING"))

        assert not [r for r in caplog.records if r.name == LOGGER_NAME]

    def test_handler_exception_is_logged_and_reraised(self, caplog):
        def broken(command):
            raise RuntimeError("boom")

        handler = MiddlewarePipeline().add(CommandLoggingMiddleware()).wrap(broken)

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            with pytest.raises(RuntimeError):
                handler(make_command("GET", "k"))

        assert caplog.records[-1].levelno == logging.ERROR
