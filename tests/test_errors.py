"""Tests for the source error taxonomy."""

import pytest
import requests

from core.errors import SourceError, SourceErrorType


@pytest.mark.parametrize("status, kind", [
    (401, SourceErrorType.AUTHENTICATION),
    (403, SourceErrorType.AUTHENTICATION),
    (429, SourceErrorType.RATE_LIMIT),
    (500, SourceErrorType.NETWORK),
    (404, SourceErrorType.NETWORK),
])
def test_from_status(status, kind):
    error = SourceError.from_status(status, "s1", "https://api.example/x")
    assert error.kind is kind
    assert error.details == {"status": status, "url": "https://api.example/x"}
    assert error.source_id == "s1"


def test_fixed_user_messages():
    assert SourceError(SourceErrorType.RATE_LIMIT, "HTTP 429").user_message() == (
        "Rate limit exceeded. Please try again later."
    )
    assert "credentials" in SourceError("authentication", "x").user_message()


def test_unknown_kind_falls_back_to_raw_message():
    error = SourceError(SourceErrorType.UNKNOWN, "weird payload")
    assert error.user_message() == "An unexpected error occurred: weird payload"
    error = SourceError(SourceErrorType.PARAMETER, "per_page out of range")
    assert error.user_message() == "An unexpected error occurred: per_page out of range"


def test_wrap_passes_source_errors_through():
    original = SourceError(SourceErrorType.RATE_LIMIT, "slow down")
    wrapped = SourceError.wrap(original, "s1")
    assert wrapped is original
    assert wrapped.source_id == "s1"


def test_wrap_requests_failure_is_network():
    error = SourceError.wrap(requests.ConnectionError("refused"), "s1")
    assert error.kind is SourceErrorType.NETWORK
    assert error.details["exception"] == "ConnectionError"


def test_wrap_anything_else_is_unknown():
    error = SourceError.wrap(KeyError("meta"))
    assert error.kind is SourceErrorType.UNKNOWN


def test_to_dict():
    error = SourceError(SourceErrorType.CONFIGURATION, "no endpoint", "s1", {"key": "search"})
    assert error.to_dict() == {
        "kind": "configuration",
        "message": "no endpoint",
        "source_id": "s1",
        "details": {"key": "search"},
    }
