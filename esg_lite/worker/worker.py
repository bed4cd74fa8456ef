import signal
import threading
import time
from types import FrameType

from esg_lite.config.settings import Settings
from esg_lite.logging.logger import Log
from esg_lite.maintenance.stale_sweeper import StaleDocumentSweeper
from esg_lite.queue.base import BaseJobQueue
from esg_lite.queue.exceptions import QueueError
from esg_lite.queue.models import ClaimedJob
from esg_lite.worker.job_runner import JobRunner


class Worker:
    """Poll loop: sweep -> claim -> dispatch -> sleep."""

    def __init__(
        self,
        queue: BaseJobQueue,
        job_runner: JobRunner,
        sweeper: StaleDocumentSweeper | None,
        settings: Settings,
    ) -> None:
        self._queue = queue
        self._job_runner = job_runner
        self._sweeper = sweeper
        self._settings = settings
        self._stop = threading.Event()
        self._last_sweep: float | None = None

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)

    def stop(self) -> None:
        self._stop.set()

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until stopped by a signal.

        If max_jobs is set, stop after processing that many jobs (for testing).
        """
        Log.info("Worker started, polling for jobs")
        jobs_done = 0
        while not self._stop.is_set():
            if max_jobs is not None and jobs_done >= max_jobs:
                break
            self._maybe_sweep()
            job = self._try_claim_job()
            if job:
                try:
                    self._job_runner.run(job)
                except Exception as exc:
                    # the job stays active in the queue until it expires
                    Log.error(f"Job {job.id} aborted: {exc}")
                jobs_done += 1
            else:
                Log.debug("No jobs available, sleeping")
                self._stop.wait(self._settings.job_poll_interval_seconds)
        Log.info("Worker shutting down gracefully", jobs_done=jobs_done)

    def _try_claim_job(self) -> ClaimedJob | None:
        """Attempt to claim the next due job. Gracefully handle queue errors."""
        try:
            return self._queue.claim_next()
        except QueueError as exc:
            Log.warning(f"Queue error, will retry: {exc}")
            return None

    def _maybe_sweep(self) -> None:
        if self._sweeper is None:
            return
        now = time.monotonic()
        interval = self._settings.stale_sweep_interval_seconds
        if self._last_sweep is not None and now - self._last_sweep < interval:
            return
        self._last_sweep = now
        try:
            self._sweeper.sweep()
        except Exception as exc:
            Log.error(f"Stale sweep failed: {exc}")

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        Log.info(f"Received signal {signum}, finishing current job")
        self._stop.set()
