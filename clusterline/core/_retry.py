from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from .exceptions import InvalidArgumentError, TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 5,
    initial_delay: float = 1.0,
    multiplier: float = 2.0,
    is_retryable: Callable[[BaseException], bool] | None = None,
    label: str | None = None,
) -> T:
    """Call ``operation`` until it succeeds or the attempt budget runs out.

    Args:
        operation: Zero argument coroutine function to invoke.
        max_attempts: Total number of calls, including the first.
        initial_delay: Seconds to wait before the second call.
        multiplier: Factor applied to the delay after every failure.
        is_retryable:
            Classifier for failures. When it returns False the failure
            is raised unchanged. Without one every failure is retried.
        label: Operation name attached to the exhausted failure.

    Raises:
        TransientProviderError:
            All attempts failed. The last failure is the cause.
    """
    if max_attempts < 1:
        raise InvalidArgumentError("retry requires max_attempts >= 1")
    if initial_delay < 0 or multiplier < 0:
        raise InvalidArgumentError("retry requires non-negative delays")

    delay = initial_delay
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except InvalidArgumentError:
            raise
        except Exception as e:
            if is_retryable is not None and not is_retryable(e):
                raise
            if attempt >= max_attempts:
                raise TransientProviderError(
                    f"failed after {attempt} attempts: {e}", label=label
                ) from e
            logger.debug(
                "Attempt %s/%s of %s failed (%s), retrying in %ss",
                attempt,
                max_attempts,
                label or "operation",
                e,
                delay,
            )
        await asyncio.sleep(delay)
        delay = delay * multiplier


def retry_kwargs(settings: Any) -> dict[str, Any]:
    return dict(
        max_attempts=settings.retry_max_attempts,
        initial_delay=settings.retry_initial_delay,
        multiplier=settings.retry_multiplier,
    )
