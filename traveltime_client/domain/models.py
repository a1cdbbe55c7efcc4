"""Domain models for the travel time client.

Request rows use Pydantic v2 for validation; wire-level records are plain
dataclasses built by the message codec.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from traveltime_client.domain.object_id import ObjectId

INT32_MIN: Final[int] = -(2**31)
INT32_MAX: Final[int] = 2**31 - 1
INT64_MIN: Final[int] = -(2**63)
INT64_MAX: Final[int] = 2**63 - 1


class ParamRow(BaseModel):
    """One queried location and time window of a travel time request."""

    model_config = ConfigDict(frozen=True)

    realm: str = Field(..., min_length=1, description="Realm of the worldgraph node")
    node_id: str = Field(..., min_length=1, description="Worldgraph node id")
    start_time: int = Field(
        ..., ge=INT64_MIN, le=INT64_MAX, description="Window start, epoch milliseconds"
    )
    end_time: int = Field(
        ..., ge=INT64_MIN, le=INT64_MAX, description="Window end, epoch milliseconds"
    )
    interval: int = Field(
        ..., ge=INT32_MIN, le=INT32_MAX, description="Aggregation interval"
    )

    @field_validator("start_time", "end_time", "interval", mode="before")
    @classmethod
    def _truncate_numbers(cls, value: Any) -> Any:
        # JSON numbers may arrive as floats; drop the fractional part.
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        if isinstance(value, float):
            return int(value)
        return value

    @property
    def start(self) -> datetime:
        return datetime.fromtimestamp(self.start_time / 1000, tz=UTC)

    @property
    def end(self) -> datetime:
        return datetime.fromtimestamp(self.end_time / 1000, tz=UTC)


class JobStatus(IntEnum):
    """Remote job status as carried in the Job message."""

    PENDING = 0
    RUNNING = 1
    COMPLETE = 2
    ERROR = 3

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETE, JobStatus.ERROR)


@dataclass(frozen=True)
class TaskParameter:
    """Named binary parameter table attached to a RunSpec."""

    key: str
    value: bytes


@dataclass(frozen=True)
class RunSpec:
    """Instructions for running a schematic.

    ``param_indices[i]`` lists the indices into ``params`` consumed by task i.
    """

    schematic: ObjectId
    params: list[TaskParameter] = field(default_factory=list)
    param_indices: list[list[int]] = field(default_factory=list)
    dry_run: bool = False

    def __post_init__(self) -> None:
        for task_indices in self.param_indices:
            for index in task_indices:
                if not 0 <= index < len(self.params):
                    raise ValueError(
                        f"Parameter index {index} out of range for "
                        f"{len(self.params)} parameter table(s)"
                    )

    @property
    def task_count(self) -> int:
        return len(self.param_indices)


@dataclass(frozen=True)
class Task:
    output: ObjectId | None = None


@dataclass(frozen=True)
class Job:
    """Remote job as observed through the status endpoint."""

    id: ObjectId | None
    status: JobStatus
    tasks: list[Task] = field(default_factory=list)


@dataclass(frozen=True)
class DownloadedArtifact:
    """Result body fetched from the data catalog."""

    filename: str
    content: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class PollPolicy:
    """Bounded exponential backoff for job status polling (seconds)."""

    initial_interval: float = 1.0
    max_interval: float = 30.0
    multiplier: float = 2.0
    jitter: float = 0.5
    timeout: float | None = 3600.0

    def __post_init__(self) -> None:
        if self.initial_interval <= 0 or self.max_interval <= 0:
            raise ValueError("Poll intervals must be positive")
        if self.multiplier < 1:
            raise ValueError("Poll backoff multiplier must be at least 1")
        if self.jitter < 0:
            raise ValueError("Poll jitter must not be negative")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("Poll timeout must be positive")

    def delay_for(self, attempt: int) -> float:
        """Delay before poll number ``attempt + 1`` (without jitter)."""
        delay = self.initial_interval
        for _ in range(attempt):
            if delay >= self.max_interval or self.multiplier == 1:
                break
            delay *= self.multiplier
        return min(delay, self.max_interval)
