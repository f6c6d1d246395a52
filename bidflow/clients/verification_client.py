"""Email one-time-code verification for report access."""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from bidflow.clients.workflow_client import extract_error_message
from bidflow.config.constants import (
    NETWORK_ERROR_MESSAGE,
    SEND_CODE_FALLBACK_ERROR,
    VERIFY_CODE_FALLBACK_ERROR,
)
from bidflow.core.exceptions import VerificationError
from bidflow.core.logging_utils import sanitize_email, sanitize_token
from bidflow.core.settings import VerificationSettings, verification_settings
from bidflow.models.dto import SendCodeResult, VerifiedSession, VerifyCodeResult
from bidflow.session.session_store import VerificationSessionStore

logger = logging.getLogger(__name__)


class VerificationClient:
    """Email one-time-code exchange backed by a local session store.

    A successful ``submit_code`` writes the new session through the store
    before returning, so ``is_verified`` reflects it immediately. Failures
    leave the store untouched.
    """

    def __init__(
        self,
        store: VerificationSessionStore,
        settings: Optional[VerificationSettings] = None,
        anon_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.settings = settings or verification_settings
        self.base_url = self.settings.VERIFICATION_BASE_URL.rstrip("/")
        self.anon_key = anon_key or self.settings.VERIFICATION_ANON_KEY.get_secret_value()
        self.timeout = timeout or self.settings.VERIFICATION_HTTP_TIMEOUT_SECONDS
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.anon_key}",
            "apikey": self.anon_key,
        }

    async def _post(self, path: str, payload: dict, fallback_error: str) -> dict:
        """POST ``payload`` and return the decoded body.

        Raises:
            VerificationError: With the server message, the fallback, or the
                generic network message
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/{path}", json=payload, headers=self._headers()
                )
        except httpx.HTTPError as e:
            logger.error("Verification request to %s failed: %s", path, e)
            raise VerificationError(NETWORK_ERROR_MESSAGE) from e

        if not response.is_success:
            raise VerificationError(
                extract_error_message(response, fallback_error), response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise VerificationError(fallback_error, response.status_code) from e
        return data if isinstance(data, dict) else {}

    async def request_code(self, email: str) -> SendCodeResult:
        """Ask the backend to email a one-time code to ``email``."""
        try:
            data = await self._post(
                "send-verification-code", {"email": email}, SEND_CODE_FALLBACK_ERROR
            )
        except VerificationError as e:
            logger.info(
                "Code request rejected: %s",
                e.message,
                extra={"email": sanitize_email(email), "http_status": e.status_code},
            )
            return SendCodeResult(success=False, error=e.message)

        code = data.get("code")
        if code and not self.settings.VERIFICATION_DEV_CODE_ECHO:
            logger.warning(
                "Verification backend echoed a code while dev echo is disabled; "
                "the backend may be running in dev mode"
            )
            code = None

        logger.info("Verification code sent", extra={"email": sanitize_email(email)})
        return SendCodeResult(success=True, code=str(code) if code else None)

    async def submit_code(self, email: str, code: str) -> VerifyCodeResult:
        """Verify ``code`` for ``email`` and cache the resulting session."""
        try:
            data = await self._post(
                "verify-code", {"email": email, "code": code}, VERIFY_CODE_FALLBACK_ERROR
            )
            session = VerifiedSession.model_validate(
                {
                    "email": data.get("email") or email,
                    "sessionToken": data.get("sessionToken"),
                    "expiresAt": data.get("expiresAt"),
                }
            )
        except VerificationError as e:
            logger.info(
                "Code verification rejected: %s",
                e.message,
                extra={"email": sanitize_email(email), "http_status": e.status_code},
            )
            return VerifyCodeResult(success=False, error=e.message)
        except PydanticValidationError:
            logger.error("Verification response missing session fields")
            return VerifyCodeResult(success=False, error=VERIFY_CODE_FALLBACK_ERROR)

        self.store.set(session)
        logger.info(
            "Email verified, session %s cached",
            sanitize_token(session.session_token),
            extra={"email": sanitize_email(session.email)},
        )
        return VerifyCodeResult(
            success=True,
            session_token=session.session_token,
            email=session.email,
            expires_at=session.expires_at,
        )

    def is_verified(self, email: str) -> bool:
        return self.store.is_verified(email)

    def clear_session(self) -> None:
        self.store.clear()
