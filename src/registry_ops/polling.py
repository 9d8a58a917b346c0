"""Bounded retry helper for readiness polling.

``poll_until`` calls a probe a fixed number of times with a fixed pause
between attempts and stops at the first success. It never sleeps before the
first attempt or after the last one.

Usage:
    from registry_ops.polling import poll_until

    result = poll_until(api.is_responding, interval=2.0, max_attempts=60,
                        succeeded=bool)
    if not result.success:
        raise ReadinessTimeoutError("Registry failed to start")
"""

import logging
import time
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class PollResult(BaseModel):
    """Outcome of a ``poll_until`` run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    attempts: int
    value: Any = None
    last_error: BaseException | None = None
    aborted: bool = False


def poll_until(
    probe: Callable[[], Any],
    *,
    interval: float,
    max_attempts: int,
    succeeded: Callable[[Any], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Callable[[int], None] | None = None,
    abort: Callable[[], bool] | None = None,
) -> PollResult:
    """Call ``probe`` until it succeeds or ``max_attempts`` is exhausted.

    An attempt succeeds when ``probe()`` returns without raising and
    ``succeeded(value)`` is truthy (any returned value counts when
    ``succeeded`` is None). Exceptions raised by the probe count as a
    failed attempt.

    Args:
        probe: Zero-argument callable performing one check.
        interval: Seconds to sleep between attempts.
        max_attempts: Upper bound on probe calls.
        succeeded: Optional predicate applied to the probe's return value.
        sleep: Sleep function (injected by tests).
        on_retry: Called with the attempt number after each failed attempt
            that will be retried.
        abort: Checked after each failed attempt; when it returns True the
            loop stops early with ``aborted`` set and no further sleep.

    Returns:
        PollResult with the attempt count and the successful value, or the
        last error when every attempt failed.

    Raises:
        ValueError: If ``max_attempts`` < 1 or ``interval`` < 0.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    if interval < 0:
        raise ValueError(f"interval must be >= 0, got {interval}")

    last_error: BaseException | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            value = probe()
        except Exception as e:
            logger.debug("Probe attempt %d raised: %s", attempt, e)
            last_error = e
        else:
            if succeeded is None or succeeded(value):
                return PollResult(success=True, attempts=attempt, value=value)
            logger.debug("Probe attempt %d returned %r", attempt, value)

        if abort is not None and abort():
            logger.debug("Polling aborted after attempt %d", attempt)
            return PollResult(
                success=False, attempts=attempt, last_error=last_error, aborted=True
            )

        if attempt < max_attempts:
            if on_retry is not None:
                on_retry(attempt)
            sleep(interval)

    return PollResult(success=False, attempts=max_attempts, last_error=last_error)
