from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Protocol, TypeVar

from .data_model import DataModel
from .exceptions import ConvergenceError, OperationCancelledError

logger = logging.getLogger(__name__)

S = TypeVar("S")
T = TypeVar("T")


class PollState(str, Enum):
    PENDING = "PENDING"
    DONE = "DONE"
    FAILED = "FAILED"


class Poll(DataModel, Generic[T]):
    """Outcome of classifying one observed state."""

    state: PollState
    value: T | None = None
    error: BaseException | None = None

    @classmethod
    def pending(cls) -> Poll:
        return cls(state=PollState.PENDING)

    @classmethod
    def done(cls, value: Any = None) -> Poll:
        return cls(state=PollState.DONE, value=value)

    @classmethod
    def failed(cls, error: BaseException | str) -> Poll:
        if isinstance(error, str):
            error = ConvergenceError(error)
        return cls(state=PollState.FAILED, error=error)


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


async def poll_until(
    check: Callable[[], Awaitable[S]],
    interval: float,
    classify: Callable[[S], Poll],
    cancel: CancelToken | None = None,
    label: str | None = None,
) -> Any:
    """Re-run ``check`` every ``interval`` seconds until ``classify`` settles.

    There is no iteration cap. Bound the wait with ``cancel`` or an outer
    ``asyncio.wait_for``. Failures raised by ``check`` itself propagate.
    """
    checks = 0
    while True:
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(
                f"{label or 'poll'} cancelled after {checks} checks"
            )
        state = await check()
        checks += 1
        outcome = classify(state)
        if outcome.state == PollState.DONE:
            return outcome.value
        if outcome.state == PollState.FAILED:
            raise outcome.error or ConvergenceError(
                f"{label or 'poll'} failed after {checks} checks"
            )
        logger.debug(
            "%s pending after %s checks", label or "poll", checks
        )
        await asyncio.sleep(interval)
