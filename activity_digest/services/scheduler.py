"""Background scheduler that triggers the periodic digest jobs."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List

from ..config import ScheduleConfig

LOGGER = logging.getLogger("digest.scheduler")


@dataclass
class ScheduledTask:
    name: str
    interval: float
    handler: Callable[[], object]
    last_run: float = 0.0

    def due(self, now: float) -> bool:
        return now - self.last_run >= self.interval


class SchedulerService:
    def __init__(self, config: ScheduleConfig, tick: float = 1.0):
        self.config = config
        self.tick = tick
        self._tasks: Dict[str, ScheduledTask] = {}
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    def add_task(self, name: str, interval: float, handler: Callable[[], object]) -> None:
        # first run happens one full interval after start, not immediately
        self._tasks[name] = ScheduledTask(
            name=name, interval=interval, handler=handler, last_run=time.time()
        )

    @property
    def task_names(self) -> List[str]:
        return list(self._tasks)

    @property
    def running(self) -> bool:
        return self._thread is not None

    def run_pending(self, now: float | None = None) -> List[str]:
        """Run every due task once; returns names of tasks that completed."""
        now = time.time() if now is None else now
        ran: List[str] = []
        for task in self._tasks.values():
            if not task.due(now):
                continue
            try:
                task.handler()
                task.last_run = now
                ran.append(task.name)
            except Exception as exc:
                LOGGER.exception("Scheduled task %s failed: %s", task.name, exc)
        return ran

    def start(self) -> None:
        if self._thread:
            return

        def _loop():
            while not self._stop.is_set():
                self.run_pending()
                self._stop.wait(self.tick)

        self._thread = threading.Thread(target=_loop, name="digest-scheduler", daemon=True)
        self._thread.start()
        LOGGER.info("Scheduler started with tasks: %s", ", ".join(self._tasks))

    def stop(self) -> None:
        if self._thread:
            self._stop.set()
            self._thread.join(timeout=2)
            self._thread = None
            self._stop.clear()
