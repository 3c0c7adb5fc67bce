"""
=============================================================================
THREAD POOL
=============================================================================

Worker threads that take accepted connections off a bounded queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Thread Pool                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   listener ──submit()──► ┌───────────────────────┐                   │
    │                          │  Task queue (bounded) │                   │
    │                          └───────────┬───────────┘                   │
    │                                      │ get()                         │
    │               ┌──────────────────────┼──────────────────────┐       │
    │               ▼                      ▼                      ▼       │
    │        ┌────────────┐         ┌────────────┐         ┌────────────┐ │
    │        │  Worker-0  │         │  Worker-1  │   ...   │  Worker-N  │ │
    │        └────────────┘         └────────────┘         └────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

min_workers threads start with the pool; more are added (up to
max_workers) when every worker is busy and tasks are waiting. A full
queue makes submit() return False so the caller can answer 503 instead
of blocking the accept loop.

Shutdown does not drain the queue. Pending tasks are handed to their
on_drop callback instead of run, workers get a poison pill, and all
joins share one deadline. Workers are daemon threads, so one stuck in a
slow request cannot keep the process alive.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred call.

    Attributes:
        func: Function to run.
        args: Positional arguments.
        kwargs: Keyword arguments.
        timeout: Tasks that waited longer than this in the queue are
                 dropped instead of run.
        on_drop: Called with args instead of func when the task is
                 dropped, either stale or discarded by shutdown().
        submitted_at: Submission time, for the staleness check.
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    timeout: Optional[float] = None
    on_drop: Optional[Callable[..., Any]] = None
    submitted_at: float = field(default_factory=time.monotonic)

    def drop(self):
        """Run the on_drop callback; its errors are logged, never raised."""
        if self.on_drop is None:
            return
        try:
            self.on_drop(*self.args)
        except Exception as e:
            logger.exception(f"Drop callback failed: {e}")


class Worker(threading.Thread):
    """Pulls tasks off the shared queue until shut down or poisoned."""

    def __init__(
        self,
        task_queue: "queue.Queue[Optional[Task]]",
        worker_id: int,
        idle_timeout: float = 1.0
    ):
        super().__init__(name=f"gamestate-api-worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE

        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """Run one task; exceptions are logged and counted, never raised."""
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        try:
            waited = start_time - task.submitted_at
            if task.timeout and waited > task.timeout:
                logger.warning(
                    f"Task timed out before execution "
                    f"(waited {waited:.2f}s, timeout was {task.timeout}s)"
                )
                self.tasks_failed += 1
                task.drop()
                return

            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1

        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.exception(f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}")
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Bounded pool of worker threads.

    Args:
        min_workers: Threads started by start().
        max_workers: Upper bound when scaling up under load.
        queue_size: Maximum pending tasks.
        idle_timeout: How often idle workers re-check for shutdown.
    """

    def __init__(
        self,
        min_workers: int = 2,
        max_workers: int = 8,
        queue_size: int = 64,
        idle_timeout: float = 1.0
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()

        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    def start(self):
        if self._started:
            return

        logger.debug(f"Starting thread pool with {self.min_workers} workers")

        with self._lock:
            for _ in range(self.min_workers):
                self._spawn_worker()

        self._started = True

    def _spawn_worker(self) -> Worker:
        """Start one more worker. Caller holds self._lock."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        on_drop: Optional[Callable[..., Any]] = None,
    ) -> bool:
        """
        Queue a task without blocking.

        Args:
            timeout: Maximum time the task may wait in the queue.
            on_drop: Called with args if the task is never run.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")

        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(
            func=func,
            args=args,
            kwargs=kwargs or {},
            timeout=timeout,
            on_drop=on_drop,
        )

        try:
            self._task_queue.put(task, block=False)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker when all are busy, tasks wait, and we are under max."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return

            busy = sum(1 for w in self._workers if w.state is WorkerState.BUSY)
            if busy == len(self._workers) and self._task_queue.qsize() > 0:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._spawn_worker()

    def shutdown(self, timeout: Optional[float] = None):
        """
        Stop all workers.

        Pending tasks are discarded through their on_drop callback.
        Joins share a single deadline of timeout seconds; workers still
        busy after that are left to finish on their own as daemon threads.
        """
        if not self._started or self._shutdown:
            return

        self._shutdown = True
        deadline = None if timeout is None else time.monotonic() + timeout

        # ─────────────────────────────────────────────────────────────────
        # DROP PENDING TASKS
        # ─────────────────────────────────────────────────────────────────
        dropped = 0
        while True:
            try:
                task = self._task_queue.get_nowait()
            except queue.Empty:
                break
            self._task_queue.task_done()
            if task is not None:
                task.drop()
            dropped += 1

        if dropped:
            logger.debug(f"Dropped {dropped} pending tasks")

        # ─────────────────────────────────────────────────────────────────
        # POISON PILLS + JOIN
        # ─────────────────────────────────────────────────────────────────
        with self._lock:
            workers = list(self._workers)

        for worker in workers:
            worker.shutdown()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass  # the shutdown event still stops it

        for worker in workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(timeout=remaining)

        alive = sum(1 for w in workers if w.is_alive())
        if alive:
            logger.warning(f"{alive} worker(s) still busy after shutdown timeout")

        with self._lock:
            self._workers.clear()

        logger.debug("Thread pool shutdown complete")

    @property
    def queue_size(self) -> int:
        """Tasks currently waiting."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        workers = list(self._workers)
        return {
            "workers": {
                "total": len(workers),
                "busy": sum(1 for w in workers if w.state is WorkerState.BUSY),
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in workers),
                "failed": sum(w.tasks_failed for w in workers),
            },
        }
