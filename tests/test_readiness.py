from __future__ import annotations

import asyncio

from hexclaim.readiness import RetryPolicy, wait_until_ready


def test_policy_from_timeout_matches_default_budget() -> None:
    policy = RetryPolicy.from_timeout(timeout_seconds=5.0, interval_seconds=0.1)

    assert policy.max_attempts == 50
    assert policy.interval_seconds == 0.1


def test_wait_gives_up_after_max_attempts() -> None:
    sleeps: list[float] = []
    checks = []

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    def _check() -> bool:
        checks.append(1)
        return False

    ready = asyncio.run(wait_until_ready(_check, RetryPolicy(max_attempts=4, interval_seconds=0.1), sleep=_sleep))

    assert ready is False
    assert len(checks) == 4
    assert sleeps == [0.1, 0.1, 0.1]


def test_check_exceptions_count_as_not_ready() -> None:
    attempts = iter([RuntimeError("loading"), RuntimeError("loading"), True])

    def _check() -> bool:
        outcome = next(attempts)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def _sleep(seconds: float) -> None:
        return None

    assert asyncio.run(wait_until_ready(_check, RetryPolicy(max_attempts=5), sleep=_sleep)) is True
