"""Bounded polling for collaborators that become available some time after start."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Awaitable, Callable

SleepFn = Callable[[float], Awaitable[None]]

_logger = logging.getLogger("hexclaim.readiness")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Poll ``max_attempts`` times, sleeping ``interval_seconds`` between attempts."""

    max_attempts: int = 50
    interval_seconds: float = 0.1

    @classmethod
    def from_timeout(cls, *, timeout_seconds: float, interval_seconds: float) -> RetryPolicy:
        if interval_seconds <= 0:
            return cls(max_attempts=1, interval_seconds=0.0)
        attempts = max(1, math.ceil(timeout_seconds / interval_seconds))
        return cls(max_attempts=attempts, interval_seconds=interval_seconds)

    @property
    def timeout_seconds(self) -> float:
        return self.max_attempts * self.interval_seconds


async def wait_until_ready(
    check: Callable[[], bool],
    policy: RetryPolicy,
    *,
    sleep: SleepFn = asyncio.sleep,
    name: str = "dependency",
) -> bool:
    """Return True as soon as ``check()`` passes, False once the policy is exhausted."""
    for attempt in range(1, policy.max_attempts + 1):
        try:
            if check():
                if attempt > 1:
                    _logger.info("dependency_ready", extra={"dependency": name, "attempt": attempt})
                return True
        except Exception:  # noqa: BLE001 - a failing check counts as not ready.
            _logger.debug("readiness_check_failed", extra={"dependency": name, "attempt": attempt}, exc_info=True)

        if attempt < policy.max_attempts:
            await sleep(policy.interval_seconds)

    _logger.warning(
        "dependency_not_ready",
        extra={"dependency": name, "attempts": policy.max_attempts, "timeout_seconds": policy.timeout_seconds},
    )
    return False
