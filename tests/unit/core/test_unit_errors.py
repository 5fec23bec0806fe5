# tests/unit/core/test_unit_errors.py — v1
"""Tests for core/errors.py — taxonomy and envelope mapping."""

from __future__ import annotations

from genrouter.core.errors import (
    ErrorKind,
    ExecutionError,
    GenerationError,
    HandlerNotFoundError,
    JobTimeoutError,
    PollingError,
    RequestValidationError,
    SelectionError,
    error_info,
)


class TestTaxonomy:
    def test_caller_errors(self):
        assert RequestValidationError(["x"]).kind is ErrorKind.CALLER
        assert SelectionError("x").kind is ErrorKind.CALLER

    def test_external_errors(self):
        assert ExecutionError("x").kind is ErrorKind.EXTERNAL
        assert PollingError("x", job_id="j", attempts=1).kind is ErrorKind.EXTERNAL

    def test_configuration_error(self):
        assert HandlerNotFoundError("x").kind is ErrorKind.CONFIGURATION

    def test_retryable(self):
        assert ExecutionError("x").retryable
        assert not SelectionError("x").retryable
        assert not JobTimeoutError("j", 10, 1).retryable

    def test_all_are_generation_errors(self):
        for exc in (SelectionError("x"), ExecutionError("x"), HandlerNotFoundError("x")):
            assert isinstance(exc, GenerationError)


class TestMessages:
    def test_validation_message(self):
        exc = RequestValidationError(["Missing required field: prompt", "bad"], ["w"])
        assert exc.message == "Validation failed: Missing required field: prompt, bad"
        assert exc.errors == ["Missing required field: prompt", "bad"]
        assert exc.warnings == ["w"]

    def test_timeout_message(self):
        exc = JobTimeoutError("op-1", 600.0, 12)
        assert exc.message == "Job timed out after 600s"
        assert exc.attempts == 12


class TestErrorInfo:
    def test_generation_error(self):
        info = error_info(SelectionError("No models available for a/b"))
        assert info.code == "SELECTION_ERROR"
        assert info.type == "SelectionError"
        assert info.message == "No models available for a/b"

    def test_unknown_exception(self):
        info = error_info(RuntimeError("boom"))
        assert info.code == "UNKNOWN_ERROR"
        assert info.type == "RuntimeError"
        assert info.message == "boom"

    def test_exception_code_attribute(self):
        exc = ValueError("rate limited")
        exc.code = 429
        assert error_info(exc).code == "429"

    def test_empty_message_uses_class_name(self):
        assert error_info(KeyError()).message == "KeyError"
