"""Limits, accepted formats and storage keys."""

from typing import Final

MIB: Final = 1024 * 1024

# Base64 expands content by roughly a third
ENCODING_OVERHEAD_FACTOR: Final = 1.33

DEFAULT_MIME_TYPE: Final = "application/pdf"

# Strict document batch accepted by the analysis workflow
MAX_DOCUMENTS: Final = 5
MAX_DOCUMENT_SIZE_MB: Final = 10
# Ceiling on the estimated encoded size of a whole batch
MAX_PAYLOAD_SIZE_MB: Final = 5

DOCUMENT_CONTENT_TYPES: Final[frozenset[str]] = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)
DOCUMENT_EXTENSIONS: Final[frozenset[str]] = frozenset({".pdf", ".doc", ".docx"})

# Outer upload step also takes images
MAX_UPLOAD_SIZE_MB: Final = 20
UPLOAD_CONTENT_TYPES: Final[frozenset[str]] = DOCUMENT_CONTENT_TYPES | {
    "image/jpeg",
    "image/png",
    "image/gif",
}
UPLOAD_EXTENSIONS: Final[frozenset[str]] = DOCUMENT_EXTENSIONS | {
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
}

# Single key shared by every reader and writer of the cached session
VERIFIED_SESSION_KEY: Final = "bidflow_verified_session"
SESSION_STORAGE_FILENAME: Final = "storage.json"

NETWORK_ERROR_MESSAGE: Final = "Network error. Please try again."
SEND_CODE_FALLBACK_ERROR: Final = "Failed to send verification code"
VERIFY_CODE_FALLBACK_ERROR: Final = "Invalid verification code"
