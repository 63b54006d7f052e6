"""Worker side of the diff protocol.

A worker receives one serialized DiffJob at a time and answers with exactly
one reply before reading the next request. ``None`` asks the worker to exit.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from shotdiff.engine.diff_engine import run_job
from shotdiff.models.diff_result import DiffJob

logger = logging.getLogger(__name__)


class Connection(Protocol):
    def send(self, obj: Any) -> None: ...

    def recv(self) -> Any: ...


def handle_message(message: dict) -> dict:
    """Run one job and build its reply. Job failures become error replies."""
    job = DiffJob.model_validate(message)
    try:
        result = run_job(job)
    except Exception as e:
        logger.debug("Job %s failed", job.name, exc_info=True)
        return {"name": job.name, "ok": False, "error": f"{type(e).__name__}: {e}"}
    return {"name": job.name, "ok": True, "result": result.model_dump()}


def serve(conn: Connection) -> None:
    """Answer requests on conn until asked to stop or the other end goes away."""
    while True:
        try:
            message = conn.recv()
        except EOFError:
            return
        if message is None:
            return
        conn.send(handle_message(message))
