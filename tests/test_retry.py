from __future__ import annotations

import pytest

from issueledger import retry
from issueledger.errors import TransportError

# Constants for test expectations
FIRST_SUCCESS_ATTEMPT = 3  # two rate-limit failures then success
DEFAULT_ATTEMPTS = 3


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(retry.time, "sleep", lambda s: recorded.append(s))
    return recorded


def test_is_transient_tokens():
    assert retry.is_transient("Rate Limit exceeded")
    assert retry.is_transient("secondary rate limit triggered")
    assert retry.is_transient("ABUSE DETECTION mechanism")
    assert retry.is_transient("was submitted too quickly")
    assert not retry.is_transient("some other error")


def test_rate_limited_twice_then_success_sleeps_one_then_two(sleeps: list[float]):
    attempts: list[int] = []

    def fn() -> str:
        attempts.append(1)
        if len(attempts) < FIRST_SUCCESS_ATTEMPT:
            raise TransportError("gh failed", "API rate limit exceeded for user")
        return "ok"

    assert retry.run_with_retries(fn, cfg=retry.RetryConfig(attempts=3, base_sleep=1.0)) == "ok"
    assert len(attempts) == FIRST_SUCCESS_ATTEMPT
    assert sleeps == [1.0, 2.0]


def test_rate_limit_exhausts_attempts(sleeps: list[float]):
    attempts: list[int] = []

    def fn() -> str:
        attempts.append(1)
        raise TransportError("gh failed", "secondary rate limit")

    with pytest.raises(TransportError):
        retry.run_with_retries(fn, cfg=retry.RetryConfig(attempts=3, base_sleep=1.0))
    assert len(attempts) == DEFAULT_ATTEMPTS
    assert sleeps == [1.0, 2.0]


def test_non_transient_failure_is_not_retried(sleeps: list[float]):
    attempts: list[int] = []

    def fn() -> str:
        attempts.append(1)
        raise TransportError("gh failed", "could not resolve to a Repository")

    with pytest.raises(TransportError):
        retry.run_with_retries(fn, cfg=retry.RetryConfig(attempts=4, base_sleep=1.0))
    assert len(attempts) == 1
    assert sleeps == []


def test_retry_after_hint_overrides_backoff():
    cfg = retry.RetryConfig(attempts=3, base_sleep=1.0)
    assert retry.compute_sleep(1, cfg, "rate limit. Retry-After: 7") == 7.0
    assert retry.compute_sleep(2, cfg, "rate limit, please wait 30 seconds") == 30.0
    assert retry.compute_sleep(2, cfg, "rate limit") == 2.0


def test_max_sleep_cap(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ISSUELEDGER_RETRY_MAX_SLEEP", "3")
    cfg = retry.RetryConfig(attempts=3, base_sleep=1.0)
    assert retry.compute_sleep(1, cfg, "Retry-After: 60") == 3.0


def test_env_overrides_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ISSUELEDGER_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("ISSUELEDGER_RETRY_BASE", "0.5")
    cfg = retry.RetryConfig()
    assert cfg.attempts == 5
    assert cfg.base_sleep == 0.5
