"""Schematic evaluator and data catalog endpoints."""

import re
from pathlib import PurePosixPath
from typing import Final
from urllib.parse import unquote

from traveltime_client.adapters.http_gateway import HttpGateway, bearer_headers
from traveltime_client.config.logging_config import get_logger
from traveltime_client.domain.exceptions import FormatError
from traveltime_client.domain.models import DownloadedArtifact, Job
from traveltime_client.domain.object_id import ObjectId
from traveltime_client.services.messages import decode_job, decode_object_id

logger = get_logger(__name__)

OCTET_STREAM: Final[str] = "application/octet-stream"
RESULT_FORMATS: Final[tuple[str, ...]] = ("xlsx", "csv", "json")

_EXTENDED_FILENAME_RE: Final[re.Pattern[str]] = re.compile(
    r"filename\*\s*=\s*([\w!#$%&+^`{}~.-]*)'[^']*'([^;]+)", re.IGNORECASE
)
_FILENAME_RE: Final[re.Pattern[str]] = re.compile(
    r"filename\s*=\s*(?:\"([^\"]*)\"|([^;]+))", re.IGNORECASE
)


def filename_from_content_disposition(header: str | None) -> str:
    """Extract a safe local file name from a content-disposition header.

    Example:
        >>> filename_from_content_disposition('attachment; filename="out.csv"')
        'out.csv'

    Raises:
        FormatError: If the header is missing or names no usable file
    """
    if not header:
        raise FormatError("Response has no content-disposition header")

    name: str | None = None
    extended = _EXTENDED_FILENAME_RE.search(header)
    if extended:
        charset = extended.group(1) or "utf-8"
        try:
            name = unquote(extended.group(2).strip(), encoding=charset)
        except LookupError as e:
            raise FormatError(f"Unknown filename charset: {charset}") from e
    else:
        plain = _FILENAME_RE.search(header)
        if plain:
            name = plain.group(1) if plain.group(1) is not None else plain.group(2)

    if name is None:
        raise FormatError(f"No filename in content-disposition: {header!r}")

    # Keep only the final path component.
    base = PurePosixPath(name.strip().strip('"').replace("\\", "/")).name
    if base in ("", ".", ".."):
        raise FormatError(f"Unusable filename in content-disposition: {header!r}")
    return base


class EvaluatorClient:
    """Authenticated calls for submitting jobs and fetching their output."""

    def __init__(
        self,
        gateway: HttpGateway,
        token: str,
        *,
        api_base_url: str,
        authority: str,
    ) -> None:
        self._gateway = gateway
        self._base_url = api_base_url.rstrip("/")
        self._headers = bearer_headers(token, authority, OCTET_STREAM)

    def submit_job(self, run_spec: bytes) -> ObjectId:
        """POST a RunSpec message and return the new job's id."""
        body = self._gateway.request_bytes(
            "POST",
            f"{self._base_url}/schematicevaluator/jobs",
            headers=self._headers,
            data=run_spec,
        )
        if not body:
            raise FormatError("Job submission returned an empty body")
        return decode_object_id(body)

    def get_job(self, job_id: ObjectId) -> Job:
        """Fetch the current state of a job."""
        body = self._gateway.request_bytes(
            "GET",
            f"{self._base_url}/schematicevaluator/jobs/{job_id}",
            headers=self._headers,
        )
        if not body:
            raise FormatError(f"Job {job_id} returned an empty body")
        return decode_job(body)

    def download_worklog(
        self, worklog_id: str, result_format: str | None = None
    ) -> DownloadedArtifact:
        """Download the data produced under a worklog.

        Args:
            worklog_id: Worklog guid
            result_format: "xlsx", "csv" or "json"; None returns the
                vendor default Arrow stream

        Returns:
            File name from content-disposition plus the raw body
        """
        if result_format is not None and result_format not in RESULT_FORMATS:
            raise ValueError(f"Unsupported result format: {result_format}")

        params = {"format": result_format} if result_format else None
        response = self._gateway.request(
            "GET",
            f"{self._base_url}/datacatalog/stream/{worklog_id}",
            headers=self._headers,
            params=params,
        )
        if not response.content:
            raise FormatError(f"Worklog {worklog_id} returned an empty body")
        filename = filename_from_content_disposition(
            response.headers.get("content-disposition")
        )
        logger.info(
            "worklog_downloaded",
            worklog_id=worklog_id,
            filename=filename,
            size_bytes=len(response.content),
        )
        return DownloadedArtifact(
            filename=filename,
            content=response.content,
            content_type=response.headers.get("content-type"),
        )
