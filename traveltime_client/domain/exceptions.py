"""Exception hierarchy for the travel time client.

Every error is fatal: nothing below is retried internally.
"""


class TravelTimeClientError(Exception):
    """Base exception for all application errors."""

    pass


class ConfigurationError(TravelTimeClientError):
    """Config or params file is missing, unreadable, or invalid."""

    pass


class FormatError(TravelTimeClientError, ValueError):
    """Malformed identifier, binary message, or response header."""

    pass


class EncodeError(TravelTimeClientError):
    """Parameter table could not be serialized."""

    pass


class RequestError(TravelTimeClientError):
    """HTTP request failed or returned a status outside [200, 400)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        reason: str | None = None,
        body: str | None = None,
    ) -> None:
        """Initialize with the response status, reason phrase and body snippet."""
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(message)


class AuthError(TravelTimeClientError):
    """Access token could not be obtained."""

    pass


class JobError(TravelTimeClientError):
    """Base class for errors tied to a remote job."""

    def __init__(self, message: str, *, job_id: str | None = None) -> None:
        self.job_id = job_id
        super().__init__(message)


class JobFailedError(JobError):
    """Remote job reached the Error status."""

    pass


class JobTimeoutError(JobError):
    """Job did not reach a terminal status before the poll deadline."""

    def __init__(
        self, message: str, *, job_id: str | None = None, elapsed: float = 0.0
    ) -> None:
        self.elapsed = elapsed
        super().__init__(message, job_id=job_id)


class JobCancelledError(JobError):
    """Shutdown was requested while waiting for the job."""

    pass
