"""Client for the remote analysis workflow.

Submits document batches to the run endpoint and reads job status. Field
ids come from the versioned table in ``bidflow.config.workflow_fields``.
"""

import logging
from typing import Any, Mapping, Optional, Sequence

import httpx

from bidflow.config.constants import MAX_DOCUMENTS
from bidflow.config.workflow_fields import CURRENT_VERSION, resolve_field_ids
from bidflow.core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    PollingTransientError,
    SubmissionError,
    ValidationError,
)
from bidflow.core.settings import WorkflowSettings, workflow_settings
from bidflow.models.dto import EncodedDocument, SubmissionMetadata, WorkflowJob

logger = logging.getLogger(__name__)

# Response keys that may hold the run id, in order of preference
JOB_ID_KEYS = ("workflowRunId", "workflow_run_id", "run_id", "id")


def extract_job_id(payload: Any) -> Optional[str]:
    """Find the job identifier in a run-endpoint response."""
    if not isinstance(payload, Mapping):
        return None
    candidates = [payload]
    if isinstance(payload.get("data"), Mapping):
        candidates.append(payload["data"])
    for candidate in candidates:
        for key in JOB_ID_KEYS:
            value = candidate.get(key)
            if value:
                return str(value)
    return None


def extract_error_message(response: httpx.Response, fallback: str) -> str:
    """Pull a human-readable error out of an error response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or fallback

    if isinstance(payload, Mapping):
        error = payload.get("error") or payload.get("message") or payload.get("detail")
        if isinstance(error, Mapping):
            error = error.get("message")
        if error:
            return str(error)
    return fallback


class WorkflowClient:
    """Client for the remote analysis workflow (run + status endpoints)."""

    def __init__(
        self,
        settings: Optional[WorkflowSettings] = None,
        api_key: Optional[str] = None,
        field_version: str = CURRENT_VERSION,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or workflow_settings
        self.api_key = api_key or self.settings.WORKFLOW_API_KEY.get_secret_value()
        self.field_ids = resolve_field_ids(field_version, self.settings.field_overrides)
        self.timeout = timeout or self.settings.WORKFLOW_HTTP_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def build_request_body(
        self, documents: Sequence[EncodedDocument], metadata: SubmissionMetadata
    ) -> dict[str, Any]:
        """Map logical inputs onto the workflow's field ids."""
        callback_url = metadata.callback_url or self.settings.WORKFLOW_CALLBACK_URL
        values = {
            "documents": [doc.to_wire() for doc in documents],
            "user_notes": metadata.notes,
            "user_priorities": metadata.priorities,
            "request_id": metadata.request_id,
            "callback_url": callback_url,
            "project_id": metadata.project_id or "",
        }
        return {"data": {self.field_ids[name]: value for name, value in values.items()}}

    async def submit(
        self, documents: Sequence[EncodedDocument], metadata: SubmissionMetadata
    ) -> WorkflowJob:
        """Create a workflow run for ``documents``.

        Sends exactly one POST. Failures are not retried here, since a
        resubmission may duplicate work downstream.

        Raises:
            ValidationError: If the batch is empty or over the count ceiling
            ConfigurationError: If no API key is configured
            SubmissionError: On transport failure, non-2xx or a response
                without a job identifier
        """
        if not self._client:
            raise RuntimeError("Client not started")
        if not documents:
            raise ValidationError(message="No documents to submit", field="documents")
        if len(documents) > MAX_DOCUMENTS:
            raise ValidationError(
                message=f"You can upload up to {MAX_DOCUMENTS} documents at a time.",
                field="documents",
            )
        if not self.api_key:
            raise ConfigurationError(
                "Workflow API key is not configured", setting="WORKFLOW_API_KEY"
            )

        body = self.build_request_body(documents, metadata)
        log_extra = {"request_id": metadata.request_id, "document_count": len(documents)}
        logger.info("Submitting %d documents to workflow", len(documents), extra=log_extra)

        try:
            response = await self._client.post(
                self.settings.run_endpoint, json=body, headers=self._headers()
            )
        except httpx.HTTPError as e:
            logger.error("Workflow endpoint unreachable: %s", e, extra=log_extra)
            raise SubmissionError(0, f"Workflow endpoint unreachable: {e}") from e

        if not response.is_success:
            message = extract_error_message(
                response, f"Workflow run failed with HTTP {response.status_code}"
            )
            logger.error(
                "Workflow rejected submission: %s - %s",
                response.status_code,
                message,
                extra={**log_extra, "http_status": response.status_code},
            )
            raise SubmissionError(response.status_code, message)

        try:
            payload = response.json()
        except ValueError as e:
            raise SubmissionError(
                response.status_code, "Workflow returned an unreadable response"
            ) from e

        job_id = extract_job_id(payload)
        if not job_id:
            raise SubmissionError(
                response.status_code, "Workflow response did not include a job identifier"
            )

        logger.info("Workflow job created", extra={**log_extra, "job_id": job_id})
        return WorkflowJob(job_id=job_id, request_id=metadata.request_id)

    async def fetch_status(self, job_id: str) -> dict[str, Any]:
        """Query the job status endpoint once.

        Raises:
            PollingTransientError: Request failure (network, decoding, redirects),
                429, 5xx or unreadable body
            ExternalServiceError: Any other non-2xx answer
        """
        if not self._client:
            raise RuntimeError("Client not started")

        try:
            response = await self._client.get(
                self.settings.status_endpoint(job_id), headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise PollingTransientError(job_id, f"Status request failed: {e}") from e

        if response.status_code == 429 or response.is_server_error:
            raise PollingTransientError(
                job_id,
                f"Status endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not response.is_success:
            raise ExternalServiceError(
                service_name="workflow",
                message=extract_error_message(
                    response, f"Status endpoint returned HTTP {response.status_code}"
                ),
                error_code="STATUS_REJECTED",
                status_code=response.status_code,
                details={"job_id": job_id},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise PollingTransientError(job_id, "Unreadable status response") from e
        if not isinstance(payload, dict):
            raise PollingTransientError(job_id, "Unexpected status response shape")
        return payload
