"""Tests for the worker protocol and pool."""

import signal
import threading
from pathlib import Path

import pytest

from shotdiff.models.diff_result import Changed, DiffJob, Removed, Unchanged
from shotdiff.workers import pool as pool_module
from shotdiff.workers.pool import (
    FilenameQueue,
    ProcessWorker,
    ThreadWorker,
    WorkerPool,
    parse_reply,
)
from shotdiff.workers.worker import handle_message, serve

BLACK = (0, 0, 0, 255)
RED = (255, 0, 0, 255)


def _job(tmp_path: Path, name: str, threshold: float = 0.03) -> DiffJob:
    return DiffJob(
        name=name,
        baseline_path=str(tmp_path / "baseline" / name),
        candidate_path=str(tmp_path / "candidate" / name),
        output_path=str(tmp_path / "diff" / name),
        threshold=threshold,
    )


@pytest.fixture
def jobs(tmp_path: Path, write_image, solid_pixels) -> list[DiffJob]:
    """Three jobs: one unchanged, one changed by three pixels, one removed."""
    base = solid_pixels(4, 4, BLACK)
    changed = base.copy()
    changed[0, 0:3] = RED
    write_image(tmp_path / "baseline" / "same.png", base)
    write_image(tmp_path / "candidate" / "same.png", base)
    write_image(tmp_path / "baseline" / "changed.png", base)
    write_image(tmp_path / "candidate" / "changed.png", changed)
    write_image(tmp_path / "baseline" / "gone.png", base)
    (tmp_path / "candidate").mkdir(exist_ok=True)
    return [_job(tmp_path, n) for n in ("same.png", "changed.png", "gone.png")]


class _Recorder:
    def __init__(self):
        self.results = {}
        self.order = []

    def __call__(self, job, result):
        self.order.append(job.name)
        self.results[job.name] = result


class TestFilenameQueue:
    """Tests for the shared job cursor."""

    def test_claims_in_order_then_exhausts(self, tmp_path: Path):
        """Test jobs are handed out once, in order."""
        job_queue = FilenameQueue([_job(tmp_path, "a.png"), _job(tmp_path, "b.png")])
        assert job_queue.claim().name == "a.png"
        assert job_queue.remaining == 1
        assert job_queue.claim().name == "b.png"
        assert job_queue.claim() is None
        assert job_queue.remaining == 0

    def test_pool_needs_a_worker(self):
        """Test a pool needs at least one worker."""
        with pytest.raises(ValueError):
            WorkerPool(0)

    def test_concurrent_claims_never_duplicate(self, tmp_path: Path):
        """Test racing claimers together see every job exactly once."""
        names = [f"{i}.png" for i in range(500)]
        job_queue = FilenameQueue([_job(tmp_path, n) for n in names])
        claimed: list[list[str]] = [[] for _ in range(8)]

        def _claim_all(bucket: list[str]) -> None:
            while (job := job_queue.claim()) is not None:
                bucket.append(job.name)

        threads = [threading.Thread(target=_claim_all, args=(b,)) for b in claimed]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        flat = [n for bucket in claimed for n in bucket]
        assert len(flat) == len(names)
        assert sorted(flat) == sorted(names)


class TestWorkerProtocol:
    """Tests for handle_message and serve."""

    def test_successful_reply(self, jobs):
        """Test a job reply carries the serialized result."""
        reply = handle_message(jobs[1].model_dump())
        assert reply["ok"] is True
        assert reply["name"] == "changed.png"
        assert parse_reply(jobs[1], reply) == Changed(
            mismatched_pixels=3, hash=reply["result"]["hash"],
        )

    def test_failure_reply(self, jobs):
        """Test a decode failure becomes an error reply instead of raising."""
        Path(jobs[0].baseline_path).write_bytes(b"garbage")
        reply = handle_message(jobs[0].model_dump())
        assert reply["ok"] is False
        assert "UnidentifiedImageError" in reply["error"]
        assert parse_reply(jobs[0], reply) is None

    def test_no_reply_yields_nothing(self, jobs, caplog):
        """Test a missing reply is logged and yields no result."""
        assert parse_reply(jobs[0], None) is None
        assert "No reply for same.png" in caplog.text

    def test_serve_until_shutdown(self, jobs):
        """Test serve answers each request once and stops on None."""
        class _Conn:
            def __init__(self, inbox):
                self.inbox = list(inbox)
                self.sent = []

            def recv(self):
                return self.inbox.pop(0)

            def send(self, obj):
                self.sent.append(obj)

        conn = _Conn([jobs[0].model_dump(), jobs[2].model_dump(), None, jobs[1].model_dump()])
        serve(conn)
        assert [r["name"] for r in conn.sent] == ["same.png", "gone.png"]


@pytest.mark.asyncio
class TestWorkerPool:
    """Tests for WorkerPool dispatch."""

    async def test_inline_pool(self, jobs):
        """Test the inline pool completes jobs in input order."""
        recorder = _Recorder()
        await WorkerPool(4, mode="inline").run(jobs, recorder)

        assert recorder.order == ["same.png", "changed.png", "gone.png"]
        assert isinstance(recorder.results["same.png"], Unchanged)
        assert recorder.results["changed.png"].mismatched_pixels == 3
        assert isinstance(recorder.results["gone.png"], Removed)

    @pytest.mark.parametrize("mode", ["thread", "process"])
    async def test_modes_match_inline(self, jobs, mode):
        """Test isolated workers report the same results as the inline path."""
        inline = _Recorder()
        await WorkerPool(1, mode="inline").run(jobs, inline)
        isolated = _Recorder()
        await WorkerPool(2, mode=mode).run(jobs, isolated)

        assert sorted(isolated.order) == sorted(inline.order)
        assert isolated.results == inline.results

    async def test_failed_job_does_not_stop_pool(self, jobs):
        """Test a failing job yields None and later jobs still run."""
        Path(jobs[0].candidate_path).write_bytes(b"garbage")
        recorder = _Recorder()
        await WorkerPool(2, mode="thread").run(jobs, recorder)

        assert recorder.results["same.png"] is None
        assert recorder.results["changed.png"].mismatched_pixels == 3
        assert len(recorder.order) == 3

    async def test_empty_job_list(self):
        """Test no workers are started when there is nothing to do."""
        recorder = _Recorder()
        await WorkerPool(4, mode="process").run([], recorder)
        assert recorder.order == []


@pytest.mark.asyncio
class TestIsolatedWorkers:
    """Tests for thread and process workers."""

    async def test_thread_worker_round_trip(self, jobs):
        """Test a thread worker answers one request at a time."""
        worker = ThreadWorker("test-thread")
        try:
            reply = await worker.request(jobs[2].model_dump())
        finally:
            worker.close()
        assert reply["result"]["status"] == "removed"

    async def test_thread_worker_restarts_after_crash(self, jobs, monkeypatch, caplog):
        """Test a crashed worker thread yields no reply and is restarted for the next job."""
        crashes = []

        def crash_once(conn):
            if not crashes:
                crashes.append(conn.recv())
                raise RuntimeError("worker thread died")
            serve(conn)

        monkeypatch.setattr(pool_module, "serve", crash_once)
        worker = ThreadWorker("test-thread")
        try:
            assert await worker.request(jobs[0].model_dump()) is None
            reply = await worker.request(jobs[0].model_dump())
        finally:
            worker.close()

        assert reply["ok"] is True
        assert reply["result"]["status"] == "unchanged"
        assert "Restarting worker test-thread" in caplog.text

    async def test_process_worker_respawns_after_crash(self, jobs, caplog):
        """Test a dead worker yields no reply and is replaced for the next job."""
        worker = ProcessWorker("test-process")
        try:
            first_pid = worker.pid
            worker._process.terminate()
            worker._process.join()

            assert await worker.request(jobs[0].model_dump()) is None
            assert worker.pid != first_pid
            assert f"exited with code {-signal.SIGTERM}" in caplog.text

            reply = await worker.request(jobs[0].model_dump())
            assert reply["ok"] is True
            assert reply["result"]["status"] == "unchanged"
        finally:
            worker.close()
