"""Protocol definitions for dependency inversion."""

from typing import Protocol

from traveltime_client.domain.models import DownloadedArtifact, Job
from traveltime_client.domain.object_id import ObjectId


class ShutdownSignal(Protocol):
    """Cancellation hook; ``threading.Event`` satisfies it."""

    def is_set(self) -> bool: ...

    def wait(self, timeout: float | None = None) -> bool: ...


class EvaluatorClientProtocol(Protocol):
    """Remote operations the job orchestrator depends on."""

    def submit_job(self, run_spec: bytes) -> ObjectId:
        """Submit a size-prefixed RunSpec message.

        Returns:
            Id of the created job

        Raises:
            RequestError: On HTTP failure
            FormatError: If the response is not an ObjectId message
        """
        ...

    def get_job(self, job_id: ObjectId) -> Job:
        """Fetch the current job state.

        Raises:
            RequestError: On HTTP failure
            FormatError: If the response is not a Job message
        """
        ...

    def download_worklog(
        self, worklog_id: str, result_format: str | None = None
    ) -> DownloadedArtifact:
        """Download a worklog's data in the given format.

        Raises:
            RequestError: On HTTP failure
            FormatError: If no file name can be derived from the response
        """
        ...
