"""Locally cached verified session.

Best effort throughout: a missing, expired, corrupt or unreachable record
reads as "not verified" and writes fail quietly, so losing the session only
ever means asking the user to verify again.
"""

import json
import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from bidflow.config.constants import SESSION_STORAGE_FILENAME, VERIFIED_SESSION_KEY
from bidflow.core.logging_utils import sanitize_email
from bidflow.core.settings import app_settings
from bidflow.models.dto import VerifiedSession, utcnow
from bidflow.session.storage import JsonFileStorage, SessionStorage, StorageUnavailableError

logger = logging.getLogger(__name__)


class VerificationSessionStore:
    """Holds at most one VerifiedSession under VERIFIED_SESSION_KEY."""

    def __init__(
        self,
        storage: SessionStorage,
        key: str = VERIFIED_SESSION_KEY,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.key = key
        self.clock = clock

    def get(self) -> Optional[VerifiedSession]:
        """Return the cached session, or None if absent, expired or unreadable.

        An expired record is removed as a side effect.
        """
        try:
            raw = self.storage.get_item(self.key)
        except StorageUnavailableError as e:
            logger.warning("Verified session unreadable: %s", e)
            return None
        if not raw:
            return None

        try:
            session = VerifiedSession.model_validate(json.loads(raw))
        except (ValueError, PydanticValidationError):
            logger.warning("Discarding malformed verified session record")
            return None

        if session.is_expired(self.clock()):
            logger.info(
                "Verified session expired",
                extra={"email": sanitize_email(session.email)},
            )
            self.clear()
            return None

        return session

    def set(self, session: VerifiedSession) -> None:
        """Store ``session``, replacing any previous one."""
        try:
            self.storage.set_item(self.key, json.dumps(session.to_record()))
        except StorageUnavailableError as e:
            logger.error("Failed to store verified session: %s", e)

    def clear(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except StorageUnavailableError as e:
            logger.warning("Failed to clear verified session: %s", e)

    def is_verified(self, email: str) -> bool:
        """True when the cached, unexpired session belongs to ``email``.

        Comparison is case-insensitive.
        """
        session = self.get()
        return session is not None and session.matches(email)


def create_default_store() -> VerificationSessionStore:
    """Store backed by the JSON file in the configured state directory."""
    return VerificationSessionStore(
        JsonFileStorage(app_settings.state_dir / SESSION_STORAGE_FILENAME)
    )
