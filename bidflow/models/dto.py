"""
Typed contracts shared across the codec, clients and session store.
"""

from __future__ import annotations

import mimetypes
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SourceFile(BaseModel):
    """
    A raw file chosen by the user, before validation and encoding.

    Exactly one of ``path`` or ``data`` backs the content. ``mime_type`` is
    whatever the caller declared and may be empty.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    mime_type: str = ""
    size: int = Field(ge=0)
    path: Path | None = None
    data: bytes | None = None

    @classmethod
    def from_path(cls, path: str | Path, mime_type: str | None = None) -> SourceFile:
        file_path = Path(path)
        if mime_type is None:
            mime_type = mimetypes.guess_type(file_path.name)[0] or ""
        return cls(
            filename=file_path.name,
            mime_type=mime_type,
            size=file_path.stat().st_size,
            path=file_path,
        )

    @classmethod
    def from_bytes(cls, filename: str, data: bytes, mime_type: str = "") -> SourceFile:
        return cls(filename=filename, mime_type=mime_type, size=len(data), data=data)

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    def read(self) -> bytes:
        """Read the full content. Raises OSError when nothing can be read."""
        if self.data is not None:
            return self.data
        if self.path is None:
            raise OSError(f"No content source for {self.filename}")
        return self.path.read_bytes()


class EncodedDocument(BaseModel):
    """
    A file in transport-safe form. ``size`` is the raw byte length.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    filename: str
    mime_type: str = Field(alias="mimeType")
    content: str
    size: int

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class PayloadCheck(BaseModel):
    valid: bool
    message: str | None = None
    estimated_size: int = 0


class EncodingReport(BaseModel):
    """
    Diagnostics for one file's encoding, used for QA of uploads.
    """

    filename: str
    success: bool
    original_size: int
    encoded_length: int = 0
    decoded_size: int | None = None
    overhead_percent: float | None = None
    first_chars: str = ""
    last_chars: str = ""
    detected_type: str | None = None
    type_matches_declared: bool | None = None
    pdf_header_valid: bool | None = None
    error: str | None = None


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


_STATUS_RANK = {
    JobStatus.PENDING: 0,
    JobStatus.RUNNING: 1,
    JobStatus.SUCCEEDED: 2,
    JobStatus.FAILED: 3,
    JobStatus.TIMED_OUT: 4,
}

TERMINAL_STATUSES = frozenset(
    {JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TIMED_OUT}
)


class WorkflowJob(BaseModel):
    """
    One submitted analysis run. Only the poller changes its status.
    """

    job_id: str
    submitted_at: datetime = Field(default_factory=utcnow)
    status: JobStatus = JobStatus.PENDING
    result: Any = None
    error: str | None = None
    request_id: str | None = None

    @field_validator("submitted_at")
    @classmethod
    def _aware_submitted_at(cls, value: datetime) -> datetime:
        return _ensure_aware(value)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class SubmissionMetadata(BaseModel):
    """
    Everything sent alongside the documents on a workflow run.
    """

    notes: str = ""
    priorities: dict[str, Any] = Field(default_factory=dict)
    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    callback_url: str | None = None
    project_id: str | None = None


class VerifiedSession(BaseModel):
    """
    Locally cached proof that an email recently passed code verification.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str
    session_token: str = Field(alias="sessionToken")
    expires_at: datetime = Field(alias="expiresAt")

    @field_validator("expires_at")
    @classmethod
    def _aware_expires_at(cls, value: datetime) -> datetime:
        return _ensure_aware(value)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def matches(self, email: str) -> bool:
        return self.email.strip().lower() == email.strip().lower()

    def to_record(self) -> dict[str, str]:
        return {
            "email": self.email,
            "sessionToken": self.session_token,
            "expiresAt": self.expires_at.isoformat(),
        }


class SendCodeResult(BaseModel):
    success: bool
    error: str | None = None
    code: str | None = None


class VerifyCodeResult(BaseModel):
    success: bool
    session_token: str | None = None
    email: str | None = None
    expires_at: datetime | None = None
    error: str | None = None


class AnalysisOutcome(BaseModel):
    """
    Result of the validate → encode → submit → poll flow.

    ``error_code`` mirrors the exception that stopped the flow; a job that
    timed out is returned with ``job.status == timed_out`` instead.
    """

    success: bool
    job: WorkflowJob | None = None
    error_code: str | None = None
    message: str | None = None
    errors: list[str] = Field(default_factory=list)
