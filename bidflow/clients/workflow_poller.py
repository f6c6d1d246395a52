"""Drives a submitted workflow job to a terminal state.

State machine over ``JobStatus``::

    pending -> running -> succeeded | failed
    pending | running -> timed_out   (wall clock since submission > ceiling)

Status only moves forward. Transient poll failures are swallowed and count
toward the timeout budget; they never end the job on their own.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from bidflow.clients.workflow_client import WorkflowClient
from bidflow.core.exceptions import (
    ExternalServiceError,
    PollingTimeout,
    PollingTransientError,
)
from bidflow.core.settings import workflow_settings
from bidflow.models.dto import JobStatus, WorkflowJob, utcnow

logger = logging.getLogger(__name__)

REMOTE_STATUS_MAP: dict[str, JobStatus] = {
    "pending": JobStatus.PENDING,
    "queued": JobStatus.PENDING,
    "uploaded": JobStatus.PENDING,
    "triggered": JobStatus.PENDING,
    "running": JobStatus.RUNNING,
    "processing": JobStatus.RUNNING,
    "in_progress": JobStatus.RUNNING,
    "analyzing": JobStatus.RUNNING,
    "succeeded": JobStatus.SUCCEEDED,
    "success": JobStatus.SUCCEEDED,
    "completed": JobStatus.SUCCEEDED,
    "done": JobStatus.SUCCEEDED,
    "finished": JobStatus.SUCCEEDED,
    "extracted": JobStatus.SUCCEEDED,
    "verified": JobStatus.SUCCEEDED,
    "review_needed": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
    "cancelled": JobStatus.FAILED,
}


def map_remote_status(payload: Mapping[str, Any]) -> Optional[JobStatus]:
    """Translate a status response into a JobStatus, None when inconclusive."""
    raw = payload.get("status")
    if raw is None and isinstance(payload.get("data"), Mapping):
        raw = payload["data"].get("status")
    status = REMOTE_STATUS_MAP.get(str(raw).strip().lower()) if raw is not None else None
    if status is None and payload.get("result") is not None:
        return JobStatus.SUCCEEDED
    return status


def _remote_error(payload: Mapping[str, Any]) -> str:
    error = payload.get("error") or payload.get("error_message")
    if isinstance(error, Mapping):
        error = error.get("message")
    return str(error) if error else "Analysis failed"


@dataclass
class PollState:
    """Explicit polling bookkeeping.

    Attributes:
        elapsed_seconds: Wall-clock time since the job was submitted
        consecutive_transient_errors: Inconclusive polls in a row
        total_transient_errors: Inconclusive polls overall
        polls: Status requests issued
    """

    elapsed_seconds: float = 0.0
    consecutive_transient_errors: int = 0
    total_transient_errors: int = 0
    polls: int = 0

    def record_success(self) -> None:
        self.consecutive_transient_errors = 0

    def record_transient_error(self) -> None:
        self.consecutive_transient_errors += 1
        self.total_transient_errors += 1


class WorkflowPoller:
    """Polls one job at a fixed interval until terminal, timed out or cancelled.

    One poller per job id; concurrent batches get their own job and poller.

    Args:
        client: Started WorkflowClient used for status requests
        job: Job to drive; mutated in place
        interval_seconds: Delay between polls
        timeout_seconds: Ceiling on time since ``job.submitted_at``
        clock: Returns the current aware datetime
        cancel_event: Shared event that stops polling when set; a fresh one
            is created when omitted
    """

    def __init__(
        self,
        client: WorkflowClient,
        job: WorkflowJob,
        interval_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.client = client
        self.job = job
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else workflow_settings.WORKFLOW_POLL_INTERVAL_MS / 1000
        )
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else workflow_settings.WORKFLOW_POLL_TIMEOUT_SECONDS
        )
        self.clock = clock
        self.state = PollState()
        self._cancelled = cancel_event or asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Stop future polling. The remote job itself is left running."""
        if not self._cancelled.is_set():
            logger.info("Polling cancelled", extra={"job_id": self.job.job_id})
        self._cancelled.set()

    def _elapsed(self) -> float:
        return (self.clock() - self.job.submitted_at).total_seconds()

    def _advance(self, status: JobStatus) -> bool:
        """Move the job forward to ``status``. Returns False on regressions."""
        if self.job.is_terminal or status.rank <= self.job.status.rank:
            return False
        logger.info(
            "Job status %s -> %s",
            self.job.status.value,
            status.value,
            extra={"job_id": self.job.job_id, "status": status.value},
        )
        self.job.status = status
        return True

    def _apply(self, payload: Mapping[str, Any]) -> None:
        status = map_remote_status(payload)
        if status is None:
            logger.debug("Inconclusive status payload for %s", self.job.job_id)
            return
        if status is JobStatus.SUCCEEDED and self._advance(status):
            self.job.result = payload.get("result")
        elif status is JobStatus.FAILED and self._advance(status):
            self.job.error = _remote_error(payload)
        elif not status.is_terminal:
            self._advance(status)

    def _time_out(self) -> None:
        self._advance(JobStatus.TIMED_OUT)
        self.job.error = PollingTimeout(self.job.job_id, self.timeout_seconds).message
        logger.warning(
            "Job timed out after %d polls (%d transient errors)",
            self.state.polls,
            self.state.total_transient_errors,
            extra={
                "job_id": self.job.job_id,
                "elapsed_seconds": round(self.state.elapsed_seconds, 1),
                "transient_errors": self.state.total_transient_errors,
            },
        )

    async def _wait(self, seconds: float) -> None:
        """Sleep up to ``seconds``, returning early when cancelled."""
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def poll_once(self) -> WorkflowJob:
        """Issue one status request and fold the answer into the job.

        An answer that arrives after cancel() is discarded.
        """
        if self.job.is_terminal:
            return self.job

        self.state.polls += 1
        try:
            payload = await self.client.fetch_status(self.job.job_id)
        except PollingTransientError as e:
            self.state.record_transient_error()
            logger.warning(
                "Inconclusive poll (%d in a row): %s",
                self.state.consecutive_transient_errors,
                e.message,
                extra={"job_id": self.job.job_id},
            )
            return self.job
        except ExternalServiceError as e:
            if self._advance(JobStatus.FAILED):
                self.job.error = e.message
            return self.job

        if self.cancelled:
            logger.debug("Discarding status answer received after cancel for %s", self.job.job_id)
            return self.job

        self.state.record_success()
        self._apply(payload)
        return self.job

    async def run(self) -> WorkflowJob:
        """Poll until the job is terminal, the timeout elapses or cancel().

        Returns:
            The job. After cancel() it keeps its last observed, possibly
            non-terminal, status.
        """
        while not self.job.is_terminal and not self.cancelled:
            self.state.elapsed_seconds = self._elapsed()
            if self.state.elapsed_seconds >= self.timeout_seconds:
                self._time_out()
                break

            await self.poll_once()
            if self.job.is_terminal or self.cancelled:
                break

            remaining = self.timeout_seconds - self._elapsed()
            await self._wait(min(self.interval_seconds, max(remaining, 0.0)))

        return self.job
