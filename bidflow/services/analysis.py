"""End-to-end document analysis: validate, encode, submit, poll."""

import asyncio
import logging
from typing import Optional, Sequence

import httpx

from bidflow.clients.workflow_client import WorkflowClient
from bidflow.clients.workflow_poller import WorkflowPoller
from bidflow.codec.payload_codec import PayloadCodec, ProgressCallback
from bidflow.core.exceptions import BaseError
from bidflow.core.settings import WorkflowSettings, workflow_settings
from bidflow.models.dto import (
    AnalysisOutcome,
    JobStatus,
    SourceFile,
    SubmissionMetadata,
    WorkflowJob,
)
from bidflow.validation.file_validation import validate_batch

logger = logging.getLogger(__name__)


class AnalysisService:
    """Runs document batches through the remote workflow.

    Every caller-facing failure comes back as an ``AnalysisOutcome`` rather
    than an exception. A job that outlives the polling ceiling is reported
    with ``error_code == "POLLING_TIMEOUT"`` so callers can suggest checking
    back later instead of reporting a hard failure.

    Each ``run()`` owns its own cancel event and poller, so concurrent
    batches on one service never share polling state.
    """

    def __init__(
        self,
        settings: Optional[WorkflowSettings] = None,
        api_key: Optional[str] = None,
        codec: Optional[PayloadCodec] = None,
        poll_interval_seconds: Optional[float] = None,
        poll_timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or workflow_settings
        self.api_key = api_key
        self.codec = codec or PayloadCodec()
        self.poll_interval_seconds = poll_interval_seconds
        self.poll_timeout_seconds = poll_timeout_seconds
        self.transport = transport
        self._active_runs: set[asyncio.Event] = set()

    def cancel(self) -> None:
        """Cancel every run in flight, at whatever stage it has reached.

        A run cancelled before submission sends nothing; one cancelled after
        submission stops polling and leaves the remote job running.
        """
        for cancel_event in list(self._active_runs):
            cancel_event.set()

    async def run(
        self,
        files: Sequence[SourceFile],
        metadata: Optional[SubmissionMetadata] = None,
        on_progress: Optional[ProgressCallback] = None,
        wait: bool = True,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AnalysisOutcome:
        """Validate and submit ``files``; poll to completion when ``wait``.

        Args:
            cancel_event: Cancels only this run when set. ``cancel()`` sets it
                too while the run is in flight.
        """
        metadata = metadata or SubmissionMetadata()
        cancel_event = cancel_event or asyncio.Event()
        self._active_runs.add(cancel_event)

        try:
            return await self._run(files, metadata, on_progress, wait, cancel_event)
        except BaseError as e:
            logger.warning(
                "Analysis stopped: %s",
                e.message,
                extra={"request_id": metadata.request_id, "error_code": e.error_code},
            )
            return AnalysisOutcome(
                success=False,
                error_code=e.error_code,
                message=e.message,
                errors=e.details.get("errors", [e.message]),
            )
        finally:
            self._active_runs.discard(cancel_event)

    async def _run(
        self,
        files: Sequence[SourceFile],
        metadata: SubmissionMetadata,
        on_progress: Optional[ProgressCallback],
        wait: bool,
        cancel_event: asyncio.Event,
    ) -> AnalysisOutcome:
        validate_batch(files)
        documents = await self.codec.encode_batch(files, on_progress)
        if cancel_event.is_set():
            logger.info(
                "Analysis cancelled before submission",
                extra={"request_id": metadata.request_id},
            )
            return AnalysisOutcome(
                success=False,
                error_code="ANALYSIS_CANCELLED",
                message="Analysis was cancelled before the documents were submitted.",
            )

        async with WorkflowClient(
            settings=self.settings, api_key=self.api_key, transport=self.transport
        ) as client:
            job = await client.submit(documents, metadata)
            if not wait:
                return AnalysisOutcome(success=True, job=job)

            poller = WorkflowPoller(
                client,
                job,
                interval_seconds=self.poll_interval_seconds,
                timeout_seconds=self.poll_timeout_seconds,
                cancel_event=cancel_event,
            )
            job = await poller.run()

        return self._outcome_for(job)

    def _outcome_for(self, job: WorkflowJob) -> AnalysisOutcome:
        if job.status is JobStatus.SUCCEEDED:
            return AnalysisOutcome(success=True, job=job)
        if job.status is JobStatus.TIMED_OUT:
            return AnalysisOutcome(
                success=False, job=job, error_code="POLLING_TIMEOUT", message=job.error
            )
        if job.status is JobStatus.FAILED:
            return AnalysisOutcome(
                success=False, job=job, error_code="ANALYSIS_FAILED", message=job.error
            )
        return AnalysisOutcome(
            success=False,
            job=job,
            error_code="POLLING_CANCELLED",
            message="Stopped waiting for the analysis; it may still complete.",
        )
