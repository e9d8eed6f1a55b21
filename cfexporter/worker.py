"""Thread pool that runs named fetching jobs against a shared result."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .filters import Filter

log = logging.getLogger(__name__)

WorkHandler = Callable[[Any, Any], None]


@dataclass(frozen=True)
class Work:
    """A named job; the handler raises to report a failure."""

    name: str
    handler: WorkHandler


class Worker:
    """Runs queued jobs on a fixed number of threads.

    Jobs may queue further jobs while they run; ``wait`` returns once every
    queued job, including those, has finished.
    """

    def __init__(self, threads: int, filter: Filter) -> None:
        if threads < 1:
            raise ValueError("worker needs at least one thread")
        self._thread_count = threads
        self._filter = filter
        self._running: list[threading.Thread] = []
        self.reset()

    def reset(self) -> None:
        """Drop every queued job and recorded error."""
        self._queue: queue.Queue[Optional[Work]] = queue.Queue()
        self._errors: list[BaseException] = []
        self._errors_lock = threading.Lock()

    def push(self, name: str, handler: WorkHandler) -> None:
        """Queue a job."""
        self._queue.put(Work(name, handler))

    def push_if(self, name: str, handler: WorkHandler, *names: str) -> None:
        """Queue a job when any of the filter names ``names`` is enabled."""
        if self._filter.any(*names):
            self.push(name, handler)

    def pending(self) -> list[str]:
        """Names of the jobs queued and not yet picked up, in order."""
        with self._queue.mutex:
            return [work.name for work in self._queue.queue if work is not None]

    def do(self, session: Any, result: Any) -> None:
        """Run every queued job; raise the first error any of them raised."""
        for ident in range(self._thread_count):
            thread = threading.Thread(
                target=self._run,
                args=(ident, session, result),
                name=f"worker-{ident}",
                daemon=True,
            )
            self._running.append(thread)
            thread.start()
        self.wait()

    def wait(self) -> None:
        """Block until all jobs are done; raise the first error recorded."""
        log.debug("waiting for work groups to complete")
        if not self._running and self._queue.unfinished_tasks:
            raise RuntimeError("jobs are queued but no thread is running")
        self._queue.join()
        for _ in self._running:
            self._queue.put(None)
        for thread in self._running:
            thread.join()
        self._running = []
        with self._errors_lock:
            errors, self._errors = self._errors, []
        if errors:
            raise errors[0]

    def _run(self, ident: int, session: Any, entry: Any) -> None:
        while True:
            work = self._queue.get()
            if work is None:
                self._queue.task_done()
                return
            log.debug("[%2d] %s", ident, work.name)
            start = time.monotonic()
            try:
                work.handler(session, entry)
            except Exception as err:  # noqa: BLE001 - recorded and re-raised by wait()
                log.error("[%2d] %s error: %s", ident, work.name, err)
                with self._errors_lock:
                    self._errors.append(err)
            finally:
                log.debug(
                    "[%2d] %s (done, %.0f sec)", ident, work.name, time.monotonic() - start
                )
                self._queue.task_done()