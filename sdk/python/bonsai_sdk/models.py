"""
Bonsai SDK - Data models
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .errors import UnexpectedVariantError


def require_field(data: Any, key: str) -> Any:
    """Look up a mandatory response field."""
    try:
        return data[key]
    except (KeyError, TypeError, IndexError):
        raise UnexpectedVariantError(f"Response is missing {key!r}: {data!r}") from None


class JobStatus(str, Enum):
    """Status of a proving session or SNARK job."""

    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    ABORTED = "ABORTED"

    @classmethod
    def parse(cls, value: str) -> "JobStatus":
        try:
            return cls(value)
        except ValueError:
            raise UnexpectedVariantError(f"Unknown job status: {value!r}") from None

    @property
    def is_running(self) -> bool:
        return self == JobStatus.RUNNING

    @property
    def is_terminal(self) -> bool:
        """Check if the job will not change state any more."""
        return self != JobStatus.RUNNING


@dataclass
class SessionStats:
    """Execution statistics of a finished session."""

    segments: int = 0
    total_cycles: int = 0
    cycles: int = 0  # user cycles, excluding overhead

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionStats":
        """Create from API response."""
        return cls(
            segments=data.get("segments", 0),
            total_cycles=data.get("total_cycles", 0),
            cycles=data.get("cycles", 0),
        )


@dataclass
class SessionStatusResponse:
    """
    Snapshot of a proving session.

    ``receipt_url`` is normally only set once the session SUCCEEDED and
    ``error_msg`` only when it ended otherwise, but fields are passed
    through exactly as the server sent them.
    """

    status: JobStatus
    receipt_url: Optional[str] = None
    error_msg: Optional[str] = None
    state: Optional[str] = None
    elapsed_time: Optional[float] = None
    stats: Optional[SessionStats] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionStatusResponse":
        """Create from API response."""
        status = JobStatus.parse(require_field(data, "status"))
        stats = None
        if (stats_data := data.get("stats")) is not None:
            stats = SessionStats.from_dict(stats_data)

        return cls(
            status=status,
            receipt_url=data.get("receipt_url"),
            error_msg=data.get("error_msg"),
            state=data.get("state"),
            elapsed_time=data.get("elapsed_time"),
            stats=stats,
        )


@dataclass
class SnarkStatusResponse:
    """Snapshot of a SNARK wrapping job."""

    status: JobStatus
    output: Optional[str] = None  # download URL of the SNARK receipt
    error_msg: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SnarkStatusResponse":
        """Create from API response."""
        return cls(
            status=JobStatus.parse(require_field(data, "status")),
            output=data.get("output"),
            error_msg=data.get("error_msg"),
        )


@dataclass
class UploadResponse:
    """Presigned upload URL and the id the uploaded object will have."""

    url: str
    uuid: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadResponse":
        """Create from API response."""
        return cls(url=require_field(data, "url"), uuid=require_field(data, "uuid"))


@dataclass(frozen=True)
class ImageExists:
    """The image is already stored; nothing to upload."""


@dataclass(frozen=True)
class ImageNew:
    """The image is unknown; PUT it to ``url``."""

    url: str


ImageUploadOutcome = Union[ImageExists, ImageNew]


@dataclass
class Quotas:
    """Account limits and usage."""

    exec_cycle_limit: int = 0  # millions of cycles
    concurrent_proofs: int = 0
    cycle_budget: int = 0
    cycle_usage: int = 0
    dedicated_executor: int = 0
    dedicated_gpu: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quotas":
        """Create from API response."""
        return cls(
            exec_cycle_limit=data.get("exec_cycle_limit", 0),
            concurrent_proofs=data.get("concurrent_proofs", 0),
            cycle_budget=data.get("cycle_budget", 0),
            cycle_usage=data.get("cycle_usage", 0),
            dedicated_executor=data.get("dedicated_executor", 0),
            dedicated_gpu=data.get("dedicated_gpu", 0),
        )


@dataclass
class VersionInfo:
    """Versions of the risc0-zkvm crate the server supports."""

    risc0_zkvm: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionInfo":
        """Create from API response."""
        return cls(risc0_zkvm=list(data.get("risc0_zkvm", [])))
