from typing import Coroutine, Any, Optional, Set
import asyncio
import logging

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Spawns detached pipeline stages and keeps them alive until they finish.

    Request handlers call `spawn` and return immediately; completion is only
    observable through the entity status the stage writes.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug(f"Spawned background task {task.get_name()}")
        return task

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} failed: {exc}", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self):
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


task_runner = BackgroundTaskRunner()
