"""Run orchestrator — validates paths, dispatches diff jobs and reports the results."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from pathlib import Path

from shotdiff.errors import PathAvailabilityError
from shotdiff.loader.listing import union_image_names
from shotdiff.models.config import DiffConfig
from shotdiff.models.diff_result import DiffJob
from shotdiff.models.report import DiffReport
from shotdiff.progress import NullProgress, ProgressSink
from shotdiff.reporter.aggregator import ResultAggregator
from shotdiff.reporter.json_report import write_report
from shotdiff.workers.pool import WorkerPool

logger = logging.getLogger(__name__)

DIFF_IMAGE_SUFFIX = ".png"


def diff_image_name(name: str) -> str:
    """Diff images are always PNG, named after the screenshot."""
    return str(Path(name).with_suffix(DIFF_IMAGE_SUFFIX))


def diff_image_names(names: list[str]) -> dict[str, str]:
    """Map each screenshot name to a diff image name that no other screenshot uses.

    A name keeps its PNG-normalized form unless another name normalizes to the
    same file, e.g. `shot.png` and `shot.jpg`. The non-PNG one then keeps its
    full name, as `shot.jpg.png`.
    """
    normalized = {name: diff_image_name(name) for name in names}
    counts = Counter(normalized.values())
    outputs = {
        name: output for name, output in normalized.items()
        if counts[output] == 1 or name == output
    }
    taken = set(outputs.values())
    for name in names:
        if name in outputs:
            continue
        output = f"{name}{DIFF_IMAGE_SUFFIX}"
        index = 1
        while output in taken:
            output = f"{name}-{index}{DIFF_IMAGE_SUFFIX}"
            index += 1
        logger.debug("Diff image for %s renamed to %s to avoid a collision", name, output)
        outputs[name] = output
        taken.add(output)
    return outputs


def ensure_paths(baseline_dir: Path, candidate_dir: Path, diff_dir: Path) -> None:
    """Create diff_dir if needed and fail when any required directory is unavailable."""
    missing: list[str] = []
    if not baseline_dir.is_dir():
        missing.append(str(baseline_dir))
    if not candidate_dir.is_dir():
        missing.append(str(candidate_dir))

    try:
        diff_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.debug("Could not create diff path %s: %s", diff_dir, e)
    if not diff_dir.is_dir():
        missing.append(str(diff_dir))

    if missing:
        raise PathAvailabilityError(missing)


class Orchestrator:
    """Coordinates one baseline vs candidate comparison run."""

    def __init__(self, config: DiffConfig, progress: ProgressSink | None = None):
        self.config = config
        self.progress = progress or NullProgress()
        self.baseline_dir = Path(config.baseline_dir)
        self.candidate_dir = Path(config.candidate_dir)
        self.diff_dir = Path(config.diff_dir)

    def run(self) -> DiffReport:
        """Execute the complete run and return the report."""
        return asyncio.run(self.run_async())

    async def run_async(self) -> DiffReport:
        start = time.time()
        ensure_paths(self.baseline_dir, self.candidate_dir, self.diff_dir)

        names = union_image_names(self.baseline_dir, self.candidate_dir)
        outputs = diff_image_names(names)
        jobs = [self._job_for(name, outputs[name]) for name in names]
        aggregator = ResultAggregator(total_jobs=len(jobs))

        def on_result(job: DiffJob, result) -> None:
            aggregator.add(job.name, result)
            self.progress.advance(job.name, result)

        pool = self._create_pool()
        logger.info(
            "Comparing %d screenshots with %d %s worker(s), threshold %.3f",
            len(jobs), min(pool.size, len(jobs)), pool.mode, self.config.threshold,
        )
        self.progress.start(len(jobs))
        try:
            await pool.run(jobs, on_result)
        finally:
            self.progress.finish()

        report = aggregator.build_report(
            str(self.baseline_dir), str(self.candidate_dir), str(self.diff_dir),
        )
        self._store_report(report)

        if aggregator.result_count == 0:
            logger.error(report.message)
        elif report.found_differences:
            logger.warning(report.message)
        else:
            logger.info(report.message)
        logger.info("Run complete in %.1fs", time.time() - start)
        return report

    def _create_pool(self) -> WorkerPool:
        if self.config.single_thread:
            return WorkerPool(1, mode="inline")
        return WorkerPool(self.config.workers, mode=self.config.worker_mode)

    def _job_for(self, name: str, output_name: str) -> DiffJob:
        return DiffJob(
            name=name,
            baseline_path=str(self.baseline_dir / name),
            candidate_path=str(self.candidate_dir / name),
            output_path=str(self.diff_dir / output_name),
            threshold=self.config.threshold,
        )

    def _store_report(self, report: DiffReport) -> None:
        path = self.diff_dir / self.config.report_filename
        try:
            write_report(report, path)
            logger.info("Test run results saved as %s", path)
        except OSError as e:
            logger.error("Could not save test run results as %s: %s", path, e)
