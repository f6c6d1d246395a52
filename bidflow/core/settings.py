"""
Centralized settings using Pydantic.

All environment variables are read once at import and validated.
Use these instead of scattered os.getenv() calls throughout the codebase.
"""

from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings


class WorkflowSettings(BaseSettings):
    """Remote analysis workflow configuration."""

    WORKFLOW_API_BASE_URL: str = "https://api.mindpal.io/v1"
    WORKFLOW_ID: str = "69860fd696be27d5d9cb4252"
    WORKFLOW_API_KEY: SecretStr = SecretStr("")
    WORKFLOW_CALLBACK_URL: str = ""
    WORKFLOW_POLL_INTERVAL_MS: int = 2000
    WORKFLOW_POLL_TIMEOUT_SECONDS: float = 600.0
    WORKFLOW_HTTP_TIMEOUT_SECONDS: float = 30.0

    # Per-deployment overrides of the workflow input field ids
    WORKFLOW_FIELD_DOCUMENTS: str | None = None
    WORKFLOW_FIELD_USER_NOTES: str | None = None
    WORKFLOW_FIELD_USER_PRIORITIES: str | None = None
    WORKFLOW_FIELD_REQUEST_ID: str | None = None
    WORKFLOW_FIELD_CALLBACK_URL: str | None = None
    WORKFLOW_FIELD_PROJECT_ID: str | None = None

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def run_endpoint(self) -> str:
        return f"{self.WORKFLOW_API_BASE_URL.rstrip('/')}/workflows/{self.WORKFLOW_ID}/run"

    def status_endpoint(self, job_id: str) -> str:
        return (
            f"{self.WORKFLOW_API_BASE_URL.rstrip('/')}/workflows/"
            f"{self.WORKFLOW_ID}/runs/{job_id}"
        )

    @property
    def field_overrides(self) -> dict[str, str]:
        """Field-id overrides keyed by logical field name, unset ones omitted."""
        overrides = {
            "documents": self.WORKFLOW_FIELD_DOCUMENTS,
            "user_notes": self.WORKFLOW_FIELD_USER_NOTES,
            "user_priorities": self.WORKFLOW_FIELD_USER_PRIORITIES,
            "request_id": self.WORKFLOW_FIELD_REQUEST_ID,
            "callback_url": self.WORKFLOW_FIELD_CALLBACK_URL,
            "project_id": self.WORKFLOW_FIELD_PROJECT_ID,
        }
        return {name: value for name, value in overrides.items() if value}


class VerificationSettings(BaseSettings):
    """Email verification backend configuration."""

    VERIFICATION_BASE_URL: str = "http://localhost:54321/functions/v1"
    VERIFICATION_ANON_KEY: SecretStr = SecretStr("")
    # Surfaces the plaintext code echoed by dev backends. Never enable in production.
    VERIFICATION_DEV_CODE_ECHO: bool = False
    VERIFICATION_HTTP_TIMEOUT_SECONDS: float = 15.0

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class AppSettings(BaseSettings):
    """General application settings."""

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    BIDFLOW_STATE_DIR: str = ""

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def state_dir(self) -> Path:
        """Resolve the local state directory (holds the verified session)."""
        env_state_dir = self.BIDFLOW_STATE_DIR.strip()
        if env_state_dir:
            return Path(env_state_dir).expanduser().resolve()
        return Path.home() / ".bidflow"


# Singleton instances - loaded once at module import
workflow_settings = WorkflowSettings()
verification_settings = VerificationSettings()
app_settings = AppSettings()
