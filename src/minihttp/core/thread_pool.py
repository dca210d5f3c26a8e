"""
=============================================================================
THREAD POOL
=============================================================================

A bounded pool of worker threads, one connection per task.

=============================================================================
WHY BOUNDED?
=============================================================================

"One thread per connection, as many as clients open" means a burst of
idle or slow clients can exhaust memory (each thread carries its own
stack). The pool caps both sides:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   accept() ──► submit(task) ──► [ queue: queue_size slots ]        │
    │                     │                      │                        │
    │                     │ queue full           ▼                        │
    │                     └──► False       Worker-0 .. Worker-N           │
    │                          (caller       (min_workers at start,       │
    │                           sends 503)    grows up to max_workers)    │
    └─────────────────────────────────────────────────────────────────────┘

A stalled client still only occupies the one worker holding its
connection, and the Connection read timeouts make sure it lets go.

Workers exit on a None "poison pill" placed on the queue by shutdown().

=============================================================================
SCALING
=============================================================================

Every queued task is matched to a worker at submit() time:

    idle worker available      → claim it (idle count - 1)
    none idle, below max       → spawn a new worker for it
    none idle, at max          → task waits as "unclaimed"

When a worker finishes a task it first takes over an unclaimed task, and
only counts itself idle when there is none. The counts change under one
lock, so a burst of submits can never leave a queued task behind a worker
that is still busy with a stalled client while the pool is below
max_workers.

=============================================================================
"""

import threading
import queue
import time
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: ``func(*args)``."""
    func: Callable[..., Any]
    args: tuple = ()


class Worker(threading.Thread):
    """Daemon thread pulling Tasks off the shared queue until poisoned."""

    def __init__(
        self,
        task_queue: "queue.Queue[Optional[Task]]",
        worker_id: int,
        on_task_done: Optional[Callable[[], None]] = None,
        idle_timeout: float = 1.0,
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.on_task_done = on_task_done
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0
        self._stop_event = threading.Event()

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")
        while not self._stop_event.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task):
        """Run ``task``; a failing task is logged and the worker carries on."""
        self.state = WorkerState.BUSY
        start = time.time()
        try:
            task.func(*task.args)
            self.tasks_completed += 1
            logger.debug(f"Worker {self.worker_id} completed task in {time.time() - start:.3f}s")
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.state = WorkerState.IDLE
            if self.on_task_done is not None:
                self.on_task_done()

    def stop(self):
        self._stop_event.set()


class ThreadPool:
    """
    Fixed-ceiling thread pool.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()
        if not pool.submit(handle, args=(conn,)):
            reject(conn)
        pool.shutdown()
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size

        self._queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        # Guards _workers, _idle and _unclaimed
        self._lock = threading.Lock()
        self._idle = 0          # Workers with no task claimed
        self._unclaimed = 0     # Queued tasks no worker has claimed yet
        self._next_id = 0
        self._started = False
        self._shutting_down = False

    @property
    def size(self) -> int:
        return len(self._workers)

    @property
    def idle_workers(self) -> int:
        """Workers free to take the next submitted task right away."""
        return self._idle

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self):
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers (max {self.max_workers})")
        self._shutting_down = False
        with self._lock:
            self._idle = 0
            self._unclaimed = 0
            for _ in range(self.min_workers):
                self._spawn()
                self._idle += 1
        self._started = True

    def _spawn(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self._queue, self._next_id, on_task_done=self._task_done)
        self._next_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = ()) -> bool:
        """
        Queue ``func(*args)`` without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        with self._lock:
            try:
                self._queue.put_nowait(Task(func=func, args=args))
            except queue.Full:
                return False
            self._claim_worker()
        return True

    def _claim_worker(self):
        """Match the task just queued to a worker. Caller holds self._lock."""
        if self._idle > 0:
            self._idle -= 1
        elif len(self._workers) < self.max_workers:
            logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
            self._spawn()
        else:
            self._unclaimed += 1

    def _task_done(self):
        """Called by a worker after each task; it moves on to waiting work first."""
        with self._lock:
            if self._unclaimed > 0:
                self._unclaimed -= 1
            else:
                self._idle += 1

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish first.
            timeout: Upper bound on that wait, in seconds.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        if wait:
            deadline = None if timeout is None else time.time() + timeout
            while not self._queue.empty():
                if deadline is not None and time.time() > deadline:
                    logger.warning("Thread pool shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()
            self._idle = 0
            self._unclaimed = 0

        for worker in workers:
            worker.stop()
            try:
                self._queue.put_nowait(None)
            except queue.Full:
                pass  # Worker notices the stop event within idle_timeout
        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")
