import asyncio
import threading
from typing import Any, Awaitable, Callable, Iterable

_loop = None
_loop_thread = None
_loop_lock = threading.Lock()


def _ensure_loop():
    global _loop, _loop_thread
    with _loop_lock:
        if _loop and not _loop.is_closed():
            return _loop

        _loop = asyncio.new_event_loop()

        def _run_loop():
            asyncio.set_event_loop(_loop)
            _loop.run_forever()

        _loop_thread = threading.Thread(
            target=_run_loop, name="clusterline-loop", daemon=True
        )
        _loop_thread.start()
        return _loop


def run_async(func: Callable[..., Any], *args, **kwargs):
    """Run a blocking call (a boto3 request) off the event loop."""
    return asyncio.to_thread(func, *args, **kwargs)


def run_sync(
    afunc: Callable[..., Awaitable[Any]],
    *args,
    timeout: float | None = None,
    **kwargs,
):
    """Run a coroutine function to completion from synchronous code.

    The coroutine executes on a background loop, so this works whether or
    not the caller already has a running loop. On timeout the coroutine is
    cancelled; requests already accepted by AWS are not undone.
    """
    loop = _ensure_loop()

    coro = afunc(*args, **kwargs)
    future = asyncio.run_coroutine_threadsafe(coro, loop)
    try:
        return future.result(timeout=timeout)
    except TimeoutError:
        future.cancel()
        raise


async def gather_all(aws: Iterable[Awaitable[Any]]) -> list[Any]:
    """Await every awaitable and return the results in order.

    The first failure cancels the awaitables still pending and is then
    raised. Calls already handed to AWS are not undone.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        done, pending = await asyncio.wait(
            tasks, return_when=asyncio.FIRST_EXCEPTION
        )
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    failed = [
        task
        for task in tasks
        if task in done and not task.cancelled() and task.exception()
    ]
    if failed:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        raise failed[0].exception()
    return [task.result() for task in tasks]
