"""Tests for error hierarchy."""

import pytest
from lattice_sync.errors import (
    ConfigurationError,
    ConflictError,
    FatalError,
    InvalidError,
    LatticeSyncError,
    NotFoundError,
    RetryError,
    SynthesisError,
    UnsupportedKindError,
    is_retryable,
)


class TestLatticeSyncError:
    def test_basic_error(self):
        err = LatticeSyncError("something broke")
        assert "something broke" in str(err)

    def test_error_with_details(self):
        err = LatticeSyncError("oops", details={"key": "val"})
        assert err.details == {"key": "val"}
        assert "key=val" in str(err)


class TestNotFoundError:
    def test_attributes(self):
        err = NotFoundError("Service", "checkout-default")
        assert err.resource_type == "Service"
        assert err.name == "checkout-default"
        assert "not found" in str(err)


class TestConflictError:
    def test_reason(self):
        err = ConflictError("Service", "svc", "owned by someone else")
        assert err.reason == "owned by someone else"
        assert "conflict" in str(err)


class TestRetryError:
    def test_is_retryable(self):
        assert is_retryable(RetryError("still creating"))
        assert not is_retryable(InvalidError("bad"))
        assert not is_retryable(ValueError("bad"))


class TestSynthesisError:
    def test_aggregates_errors(self):
        first = RetryError("first")
        last = ConflictError("Rule", "r", "taken")
        err = SynthesisError("Rule", [first, last])
        assert err.errors == [first, last]
        assert err.last is last
        assert "2 Rule resource(s)" in str(err)

    def test_is_retryable(self):
        assert is_retryable(SynthesisError("Service", [RetryError("x")]))


class TestFatalErrors:
    def test_configuration_error(self):
        err = ConfigurationError("rule id", "bogus", "rule-<priority>")
        assert isinstance(err, FatalError)
        assert err.field == "rule id"
        assert "bogus" in str(err)

    def test_unsupported_kind(self):
        err = UnsupportedKindError("Gateway", ["ServiceNetwork", "Service"])
        assert isinstance(err, FatalError)
        assert err.supported == ["ServiceNetwork", "Service"]
        assert "Gateway" in str(err)
        assert not is_retryable(err)
