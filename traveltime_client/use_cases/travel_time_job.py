"""Travel time job use case.

Submits a RunSpec, waits for the job with bounded exponential backoff, then
downloads the first task's worklog and writes it to disk.
"""

import random
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path

import requests

from traveltime_client.adapters.auth_client import AuthClient
from traveltime_client.adapters.evaluator_client import EvaluatorClient
from traveltime_client.adapters.http_gateway import HttpGateway
from traveltime_client.config.logging_config import (
    bind_context,
    get_logger,
    unbind_context,
)
from traveltime_client.config.settings import Settings
from traveltime_client.domain.exceptions import (
    FormatError,
    JobCancelledError,
    JobFailedError,
    JobTimeoutError,
)
from traveltime_client.domain.models import Job, JobStatus, ParamRow, PollPolicy
from traveltime_client.domain.object_id import ObjectId
from traveltime_client.domain.protocols import EvaluatorClientProtocol, ShutdownSignal
from traveltime_client.services.run_spec_builder import build_run_spec_message

logger = get_logger(__name__)

ClockCallable = Callable[[], float]


class JobOrchestrator:
    """Drives one job from submission to a written result file."""

    def __init__(
        self,
        client: EvaluatorClientProtocol,
        schematic: ObjectId,
        *,
        poll_policy: PollPolicy | None = None,
        shutdown: ShutdownSignal | None = None,
        clock: ClockCallable | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            client: Evaluator endpoints
            schematic: Schematic the job runs
            poll_policy: Backoff and deadline for status polling
            shutdown: Signal whose wait() paces polling; set it to cancel
            clock: Monotonic clock used for the poll deadline
            rng: Random source for backoff jitter
        """
        self._client = client
        self._schematic = schematic
        self._poll_policy = poll_policy or PollPolicy()
        self._shutdown = shutdown or threading.Event()
        self._clock = clock or time.monotonic
        self._random = rng or random.Random()

    def submit(self, rows: Sequence[ParamRow]) -> ObjectId:
        """Submit the travel time job for the given rows."""
        message = build_run_spec_message(self._schematic, rows)
        job_id = self._client.submit_job(message)
        logger.info(
            "job_submitted",
            job_id=str(job_id),
            schematic=str(self._schematic),
            rows=len(rows),
        )
        return job_id

    def wait_for_completion(self, job_id: ObjectId) -> Job:
        """Poll until the job completes.

        Raises:
            JobFailedError: If the job reaches Error
            JobTimeoutError: If the poll deadline passes first
            JobCancelledError: If shutdown is requested while waiting
        """
        policy = self._poll_policy
        started = self._clock()
        polls = 0
        last_status: JobStatus | None = None

        while True:
            job = self._client.get_job(job_id)
            polls += 1

            if job.status != last_status:
                logger.info(
                    "job_status_changed",
                    job_id=str(job_id),
                    status=job.status.name,
                    polls=polls,
                )
                last_status = job.status

            if job.status == JobStatus.COMPLETE:
                return job
            if job.status == JobStatus.ERROR:
                raise JobFailedError(
                    f"Job {job_id} failed. Please contact the API provider.",
                    job_id=str(job_id),
                )

            elapsed = self._clock() - started
            delay = policy.delay_for(polls - 1)
            if policy.jitter > 0:
                delay += self._random.uniform(0, policy.jitter)

            if policy.timeout is not None:
                remaining = policy.timeout - elapsed
                if remaining <= 0:
                    raise JobTimeoutError(
                        f"Job {job_id} still {job.status.name} after {elapsed:.1f}s",
                        job_id=str(job_id),
                        elapsed=elapsed,
                    )
                delay = min(delay, remaining)

            logger.debug(
                "job_status_polled",
                job_id=str(job_id),
                status=job.status.name,
                polls=polls,
                next_poll_in_seconds=round(delay, 3),
            )
            if self._shutdown.wait(delay):
                raise JobCancelledError(
                    f"Cancelled while waiting for job {job_id}", job_id=str(job_id)
                )

    def fetch_results(
        self, job: Job, output_dir: Path | str, result_format: str | None
    ) -> Path:
        """Download task 0's worklog and write it under output_dir.

        The file is written whole, replacing any existing file of that name.
        """
        if not job.tasks or job.tasks[0].output is None:
            raise FormatError(f"Job {job.id} completed without a task output")

        worklog_id = job.tasks[0].output.to_guid()
        artifact = self._client.download_worklog(worklog_id, result_format)

        directory = Path(output_dir)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / artifact.filename
        path.write_bytes(artifact.content)

        logger.info(
            "results_written",
            worklog_id=worklog_id,
            path=str(path),
            size_bytes=len(artifact.content),
        )
        return path

    def run(
        self,
        rows: Sequence[ParamRow],
        output_dir: Path | str = ".",
        result_format: str | None = "xlsx",
    ) -> Path:
        """Submit, wait, and fetch; returns the written file."""
        job_id = self.submit(rows)
        bind_context(job_id=str(job_id))
        try:
            job = self.wait_for_completion(job_id)
            return self.fetch_results(job, output_dir, result_format)
        finally:
            unbind_context("job_id")


def run_travel_time_use_case(
    settings: Settings,
    rows: Sequence[ParamRow],
    *,
    result_format: str | None = "xlsx",
    output_dir: Path | str = ".",
    shutdown: ShutdownSignal | None = None,
    session: requests.Session | None = None,
) -> Path:
    """Authenticate, run one travel time job, and write its result file.

    Args:
        settings: Credentials, endpoints and polling configuration
        rows: Request rows
        result_format: "xlsx", "csv", "json", or None for the Arrow stream
        output_dir: Directory receiving the result file
        shutdown: Cancellation signal for the poll loop
        session: Optional HTTP session (closed when the run ends)

    Returns:
        Path of the written result file
    """
    with HttpGateway(
        timeout_seconds=settings.http_timeout_seconds, session=session
    ) as gateway:
        token = AuthClient(
            gateway, settings.token_url, settings.token_policy
        ).get_token(
            settings.client_id,
            settings.username,
            settings.password.get_secret_value(),
        )

        client = EvaluatorClient(
            gateway,
            token,
            api_base_url=settings.api_base_url,
            authority=settings.api_authority,
        )
        orchestrator = JobOrchestrator(
            client,
            settings.schematic_id,
            poll_policy=settings.poll_policy(),
            shutdown=shutdown,
        )
        return orchestrator.run(rows, output_dir, result_format)
