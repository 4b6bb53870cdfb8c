from __future__ import annotations

"""Runtime helpers for refreshing loaded plugin state while the process runs."""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Dict, Tuple

_log = logging.getLogger(__name__)

# Registered callbacks invoked when a refresh is requested. These should be
# idempotent and safe to call repeatedly. Synchronous handlers run in a worker
# thread so blocking filesystem work does not stall the event loop.
_REFRESH_HANDLERS: Dict[str, Tuple[int, int, Callable[[], Awaitable[None] | None]]] = {}
_handler_counter = 0

_periodic_task: asyncio.Task[None] | None = None


def register_refresh_handler(
    name: str, callback: Callable[[], Awaitable[None] | None], *, priority: int = 0
) -> None:
    """Register a named callback that runs on every refresh.

    Later registrations using the same name replace the previous handler, so
    modules can update their refresh logic without accumulating duplicates.
    Lower ``priority`` runs first.
    """

    if not name:
        raise ValueError("refresh handler name is required")
    if not callable(callback):
        raise TypeError("refresh handler must be callable")
    global _handler_counter

    _handler_counter += 1
    _REFRESH_HANDLERS[name] = (priority, _handler_counter, callback)


def unregister_refresh_handler(name: str) -> None:
    _REFRESH_HANDLERS.pop(name, None)


async def refresh_now() -> int:
    """Run every handler once, in priority order; return how many failed.

    A failing handler is logged and does not stop the ones after it.
    """
    if not _REFRESH_HANDLERS:
        _log.debug("runtime refresh requested but no handlers registered")
        return 0

    _log.info("refreshing runtime state via %d handler(s)", len(_REFRESH_HANDLERS))
    ordered_handlers = sorted(
        _REFRESH_HANDLERS.items(), key=lambda item: (item[1][0], item[1][1])
    )
    failures = 0
    for name, (_, _, handler) in ordered_handlers:
        try:
            if inspect.iscoroutinefunction(handler):
                await handler()
            else:
                result = await asyncio.to_thread(handler)
                if inspect.isawaitable(result):
                    await result
        except Exception:
            failures += 1
            _log.exception("runtime refresh handler %s failed", name)
    _log.info("runtime refresh complete")
    return failures


async def _refresh_forever(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        await refresh_now()


def start_periodic_refresh(interval: float) -> asyncio.Task[None] | None:
    """Start running :func:`refresh_now` every ``interval`` seconds.

    Must be called from a running event loop. A non-positive interval leaves
    periodic refresh disabled.
    """
    global _periodic_task

    if interval <= 0:
        _log.info("periodic refresh disabled")
        return None
    if _periodic_task is not None and not _periodic_task.done():
        return _periodic_task
    loop = asyncio.get_running_loop()
    _periodic_task = loop.create_task(_refresh_forever(interval))
    _log.info("periodic refresh every %.2fs", interval)
    return _periodic_task


async def stop_periodic_refresh() -> None:
    global _periodic_task

    task = _periodic_task
    _periodic_task = None
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
