from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from app.core.errors import ProtocolError


class JobStatus(str, Enum):
    pending = "pending"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"
    canceled = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def parse(cls, raw: Any) -> "JobStatus":
        """Map the remote service's status vocabulary onto the closed set.

        Unknown values raise ``ProtocolError`` so that polling never continues
        on a state it cannot interpret.
        """
        key = str(raw or "").strip().lower()
        try:
            return STATUS_ALIASES[key]
        except KeyError:
            raise ProtocolError(f"Unrecognized job status: {raw!r}") from None


TERMINAL_STATUSES = frozenset({JobStatus.succeeded, JobStatus.failed, JobStatus.canceled})

STATUS_ALIASES: dict[str, JobStatus] = {
    "pending": JobStatus.pending,
    "queued": JobStatus.pending,
    "starting": JobStatus.pending,
    "running": JobStatus.running,
    "processing": JobStatus.running,
    "succeeded": JobStatus.succeeded,
    "failed": JobStatus.failed,
    "canceled": JobStatus.canceled,
    "cancelled": JobStatus.canceled,
}


@dataclass(frozen=True)
class JobHandle:
    """Snapshot of a remote job as last reported by the job API."""

    id: str
    status: JobStatus
    status_url: Optional[str] = None
    output: Any = None
    error: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "JobHandle":
        if not isinstance(payload, Mapping):
            raise ProtocolError("Job API returned a non-object payload.")

        job_id = payload.get("id")
        if not isinstance(job_id, str) or not job_id.strip():
            raise ProtocolError("Job API response is missing the job id.")

        urls = payload.get("urls")
        status_url = urls.get("get") if isinstance(urls, Mapping) else None
        if not isinstance(status_url, str) or not status_url.strip():
            status_url = None

        error = payload.get("error")
        return cls(
            id=job_id,
            status=JobStatus.parse(payload.get("status")),
            status_url=status_url,
            output=payload.get("output"),
            error=str(error) if error else None,
        )


@dataclass(frozen=True)
class OutputArtifact:
    source_url: str
    suggested_name: str


@dataclass(frozen=True)
class FetchedArtifact:
    artifact: OutputArtifact
    content: bytes
    content_type: str = ""


@dataclass(frozen=True)
class ResultBundle:
    content: bytes
    filename: str
    media_type: str = "application/zip"
    passthrough: bool = False
    artifact_count: int = 0
