"""Shared fixtures for bidflow unit tests."""

from datetime import datetime, timedelta, timezone

import pytest

from bidflow.core.settings import VerificationSettings, WorkflowSettings
from bidflow.models.dto import SourceFile

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"


class FakeClock:
    """Manually advanced clock returning aware datetimes."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def workflow_config():
    return WorkflowSettings(
        WORKFLOW_API_BASE_URL="https://workflow.test/v1",
        WORKFLOW_ID="wf-123",
        WORKFLOW_API_KEY="test-api-key",
        WORKFLOW_CALLBACK_URL="https://app.test/callback",
    )


@pytest.fixture
def verification_config():
    return VerificationSettings(
        VERIFICATION_BASE_URL="https://verify.test/functions/v1",
        VERIFICATION_ANON_KEY="anon-key",
    )


@pytest.fixture
def pdf_file():
    return SourceFile.from_bytes("bid.pdf", PDF_BYTES, "application/pdf")
