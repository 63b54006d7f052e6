"""Worker pool — pull-based dispatch of diff jobs to isolated workers.

Each worker has at most one job in flight. An asyncio task per worker claims
the next job from a shared queue, sends it, waits for the single reply and
repeats until the queue is exhausted. Failed or missing replies yield no
result and are never retried.
"""

from __future__ import annotations

import asyncio
import logging
import multiprocessing
import queue
import threading
from typing import Callable, Literal, Sequence

from shotdiff.models.diff_result import DiffJob, parse_diff_result

from .worker import handle_message, serve

logger = logging.getLogger(__name__)

WorkerMode = Literal["process", "thread", "inline"]
ResultCallback = Callable[[DiffJob, object], None]

SHUTDOWN_TIMEOUT_SECONDS = 5.0


class FilenameQueue:
    """Shared cursor over the job list. claim() is atomic: no job is handed out twice."""

    def __init__(self, jobs: Sequence[DiffJob]):
        self._jobs = list(jobs)
        self._cursor = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._jobs)

    @property
    def remaining(self) -> int:
        with self._lock:
            return len(self._jobs) - self._cursor

    def claim(self) -> DiffJob | None:
        with self._lock:
            if self._cursor >= len(self._jobs):
                return None
            job = self._jobs[self._cursor]
            self._cursor += 1
            return job


class InlineWorker:
    """Runs jobs on the calling thread. Used for deterministic single-threaded runs."""

    def __init__(self, name: str):
        self.name = name

    async def request(self, message: dict) -> dict | None:
        return handle_message(message)

    def close(self) -> None:
        pass


class _QueueConnection:
    def __init__(self, inbox: queue.Queue, outbox: queue.Queue):
        self._inbox = inbox
        self._outbox = outbox

    def send(self, obj) -> None:
        self._outbox.put(obj)

    def recv(self):
        return self._inbox.get()


class ThreadWorker:
    """Serves jobs on a dedicated thread, exchanging messages over two queues."""

    def __init__(self, name: str):
        self.name = name
        self._start()

    def _start(self) -> None:
        self._requests: queue.Queue = queue.Queue()
        self._replies: queue.Queue = queue.Queue()
        self._thread = threading.Thread(
            target=self._serve, name=self.name, daemon=True,
        )
        self._thread.start()

    def _restart(self) -> None:
        self._thread.join(timeout=SHUTDOWN_TIMEOUT_SECONDS)
        logger.warning("Restarting worker %s", self.name)
        self._start()

    def _serve(self) -> None:
        try:
            serve(_QueueConnection(self._requests, self._replies))
        except Exception:
            logger.exception("Worker %s crashed", self.name)
            # Unblock a pending request; the orchestrator treats this as no reply
            self._replies.put(None)

    def _roundtrip(self, message: dict) -> dict | None:
        if not self._thread.is_alive():
            self._restart()
        self._requests.put(message)
        reply = self._replies.get()
        if reply is None:
            # Only a crashed thread answers None
            self._restart()
        return reply

    async def request(self, message: dict) -> dict | None:
        return await asyncio.to_thread(self._roundtrip, message)

    def close(self) -> None:
        self._requests.put(None)
        self._thread.join(timeout=SHUTDOWN_TIMEOUT_SECONDS)


class ProcessWorker:
    """Serves jobs in a separate process, exchanging messages over a Pipe."""

    def __init__(self, name: str, context=None):
        self.name = name
        self._context = context or multiprocessing.get_context("spawn")
        self._spawn()

    def _spawn(self) -> None:
        parent_conn, child_conn = self._context.Pipe()
        self._process = self._context.Process(
            target=serve, args=(child_conn,), name=self.name, daemon=True,
        )
        self._process.start()
        child_conn.close()
        self._conn = parent_conn
        logger.debug("Started worker %s (pid %s)", self.name, self._process.pid)

    def _respawn(self) -> None:
        self._conn.close()
        self._process.join(timeout=SHUTDOWN_TIMEOUT_SECONDS)
        logger.error("Worker %s exited with code %s, respawning", self.name, self._process.exitcode)
        self._spawn()

    def _roundtrip(self, message: dict) -> dict | None:
        try:
            self._conn.send(message)
            return self._conn.recv()
        except (EOFError, OSError) as e:
            logger.error("Worker %s exited without replying: %s", self.name, e)
            self._respawn()
            return None

    async def request(self, message: dict) -> dict | None:
        return await asyncio.to_thread(self._roundtrip, message)

    @property
    def pid(self) -> int | None:
        return self._process.pid

    def close(self) -> None:
        try:
            self._conn.send(None)
        except OSError as e:
            logger.debug("Worker %s already gone: %s", self.name, e)
        self._process.join(timeout=SHUTDOWN_TIMEOUT_SECONDS)
        if self._process.is_alive():
            logger.warning("Worker %s did not exit, terminating", self.name)
            self._process.terminate()
            self._process.join()
        self._conn.close()


def parse_reply(job: DiffJob, reply: dict | None):
    """Turn a worker reply into a DiffResult, or None when the job produced nothing."""
    if reply is None:
        logger.warning("No reply for %s, skipping", job.name)
        return None
    if not reply.get("ok"):
        logger.warning("Comparison failed for %s: %s", job.name, reply.get("error"))
        return None
    return parse_diff_result(reply["result"])


class WorkerPool:
    """Bounded pool of workers draining a FilenameQueue."""

    def __init__(self, size: int, mode: WorkerMode = "process"):
        if size < 1:
            raise ValueError(f"Worker pool size must be at least 1, got {size}")
        self.size = 1 if mode == "inline" else size
        self.mode = mode

    def _create_worker(self, index: int):
        name = f"shotdiff-worker-{index}"
        match self.mode:
            case "process":
                return ProcessWorker(name)
            case "thread":
                return ThreadWorker(name)
            case "inline":
                return InlineWorker(name)
            case _:
                raise ValueError(f"Unknown worker mode: {self.mode}")

    async def run(self, jobs: Sequence[DiffJob], on_result: ResultCallback) -> None:
        """Dispatch every job, calling on_result(job, result_or_None) as replies arrive."""
        job_queue = FilenameQueue(jobs)
        worker_count = min(self.size, len(job_queue))
        if worker_count == 0:
            return

        logger.debug("Starting %d %s worker(s) for %d jobs", worker_count, self.mode, len(job_queue))
        workers = [self._create_worker(i) for i in range(worker_count)]
        try:
            await asyncio.gather(*(self._drain(w, job_queue, on_result) for w in workers))
        finally:
            for worker in workers:
                worker.close()

    async def _drain(self, worker, job_queue: FilenameQueue, on_result: ResultCallback) -> None:
        while True:
            job = job_queue.claim()
            if job is None:
                return
            reply = await worker.request(job.model_dump())
            on_result(job, parse_reply(job, reply))
