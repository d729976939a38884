"""Hook Dispatch — explicit routing from store event to user callback, failures isolated.

Invariants:
    - Every event->callback mapping is visible, no getattr magic
    - fire() never raises: synchronous raises and failed awaitables are logged
    - Each callback is invoked exactly once per fire()
    - Awaitable results are never awaited by the caller (fire-and-forget)
    - Pending hook tasks are strongly referenced until they finish

Design Decisions:
    - Running loop present: awaitable scheduled with ensure_future, done-callback logs failure
    - No running loop: awaitable submitted to a background event loop owned by the
      dispatcher (one daemon thread, started on first use), so the caller returns at once
    - drain() awaits outstanding hook work from either loop; close() stops the background loop
"""

import asyncio
import concurrent.futures
import inspect
import logging
import threading
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable

from kvstore.core.domain_types import HookName

logger = logging.getLogger(__name__)

UpdateHook = Callable[[str, Any], Awaitable[None] | None]
DeleteHook = Callable[[str], Awaitable[None] | None]
BackupHook = Callable[[int, int], Awaitable[None] | None]

HookFuture = asyncio.Future | concurrent.futures.Future


@dataclass
class StoreHooks:
    """User callbacks for store lifecycle events. All optional."""
    on_update: UpdateHook | None = None
    on_delete: DeleteHook | None = None
    on_backup: BackupHook | None = None


class HookDispatcher:
    """Routes HookName -> callback. Explicit registration, isolated failures."""

    def __init__(self, hooks: StoreHooks | None = None):
        hooks = hooks or StoreHooks()
        self._pending: set[HookFuture] = set()
        self._background: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

        self._hooks: dict[HookName, Callable[..., Any] | None] = {
            HookName.UPDATE: hooks.on_update,
            HookName.DELETE: hooks.on_delete,
            HookName.BACKUP: hooks.on_backup,
        }

    @property
    def pending(self) -> int:
        """Number of hook tasks still running."""
        return sum(1 for future in list(self._pending) if not future.done())

    def fire(self, name: HookName, *args: Any) -> None:
        """Invoke the callback registered for name, if any. Never raises."""
        hook = self._hooks.get(name)
        if hook is None:
            return
        try:
            result = hook(*args)
        except Exception:
            logger.error(
                f"{name.value} hook failed", exc_info=True,
                extra={"hook": name.value},
            )
            return
        if inspect.isawaitable(result):
            self._schedule(name, result)

    async def drain(self) -> None:
        """Wait for every pending hook task. Failures were already logged."""
        while True:
            waiting = [future for future in list(self._pending) if not future.done()]
            if not waiting:
                return
            await asyncio.gather(
                *(_as_asyncio(future) for future in waiting), return_exceptions=True,
            )

    def close(self) -> None:
        """Stop the background loop, if one was started.

        Hooks still running on it are cancelled; drain() first to let them finish.
        """
        with self._lock:
            loop, thread = self._background, self._thread
            self._background = self._thread = None
        if loop is None:
            return
        asyncio.run_coroutine_threadsafe(_cancel_remaining(), loop).result()
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()

    # ─── Internals ───────────────────────────────────────────────

    def _schedule(self, name: HookName, awaitable: Awaitable[Any]) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            future = asyncio.run_coroutine_threadsafe(
                _await(awaitable), self._background_loop(),
            )
        else:
            future = asyncio.ensure_future(awaitable)
        self._pending.add(future)
        future.add_done_callback(partial(self._on_task_done, name))

    def _background_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._background is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever, name="kvstore-hooks", daemon=True,
                )
                thread.start()
                self._background, self._thread = loop, thread
            return self._background

    def _on_task_done(self, name: HookName, future: HookFuture) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(
                f"{name.value} hook failed", exc_info=exc,
                extra={"hook": name.value},
            )


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


async def _cancel_remaining() -> None:
    current = asyncio.current_task()
    tasks = [task for task in asyncio.all_tasks() if task is not current]
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def _as_asyncio(future: HookFuture) -> asyncio.Future:
    if isinstance(future, concurrent.futures.Future):
        return asyncio.wrap_future(future)
    return future
