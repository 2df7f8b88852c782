"""
Unit tests for RetryPolicy.
"""

from unittest.mock import patch

import pytest

from docmigrate.bulk.retry import RetryPolicy
from docmigrate.operations import OperationStatus


class TestRetryPolicyDefaults:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_retries == 10
        assert policy.base_delay_ms == 0.0
        assert policy.max_delay_ms == 30000.0
        assert policy.retry_all_failures is False

    def test_is_frozen(self) -> None:
        policy = RetryPolicy()
        with pytest.raises(AttributeError):
            policy.max_retries = 1  # type: ignore[misc]


class TestRetryPolicyValidation:
    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            ({"max_retries": -1}, "max_retries"),
            ({"base_delay_ms": -5}, "base_delay_ms"),
            ({"base_delay_ms": 100, "max_delay_ms": 50}, "max_delay_ms"),
            ({"exponential_base": 0.5}, "exponential_base"),
            ({"jitter": 1.5}, "jitter"),
        ],
    )
    def test_invalid_values(self, kwargs: dict, match: str) -> None:
        with pytest.raises(ValueError, match=match):
            RetryPolicy(**kwargs)

    def test_zero_retries_allowed(self) -> None:
        assert RetryPolicy(max_retries=0).max_retries == 0


class TestShouldRetry:
    def test_retryable(self) -> None:
        assert RetryPolicy().should_retry(OperationStatus.RETRYABLE) is True

    def test_permanent_fails_fast(self) -> None:
        assert RetryPolicy().should_retry(OperationStatus.PERMANENT) is False

    def test_retry_all_failures(self) -> None:
        """retry_all_failures treats permanent errors as retryable."""
        assert RetryPolicy(retry_all_failures=True).should_retry(OperationStatus.PERMANENT) is True

    def test_success_never_retried(self) -> None:
        assert RetryPolicy(retry_all_failures=True).should_retry(OperationStatus.SUCCESS) is False


class TestDelaySeconds:
    def test_uses_hint(self) -> None:
        """The store hint is honoured in milliseconds."""
        assert RetryPolicy().delay_seconds(0, 500) == 0.5

    def test_no_hint_no_base_is_immediate(self) -> None:
        assert RetryPolicy().delay_seconds(3) == 0.0

    def test_base_delay_grows(self) -> None:
        policy = RetryPolicy(base_delay_ms=100, exponential_base=2.0)
        assert policy.delay_seconds(0) == 0.1
        assert policy.delay_seconds(1) == 0.2
        assert policy.delay_seconds(2) == 0.4

    def test_hint_wins_over_smaller_floor(self) -> None:
        policy = RetryPolicy(base_delay_ms=100)
        assert policy.delay_seconds(0, 750) == 0.75

    def test_capped_by_max_delay(self) -> None:
        policy = RetryPolicy(max_delay_ms=1000)
        assert policy.delay_seconds(0, 60000) == 1.0

    def test_jitter_adds_to_floor(self) -> None:
        policy = RetryPolicy(base_delay_ms=100, jitter=0.5)
        with patch("docmigrate.bulk.retry.random.random", return_value=1.0):
            assert policy.delay_seconds(0) == pytest.approx(0.15)


class TestToDict:
    def test_round_trip_fields(self) -> None:
        policy = RetryPolicy(max_retries=3, base_delay_ms=10)
        assert RetryPolicy(**policy.to_dict()) == policy
