"""
PII-safe logging utilities.

Minimal masking helpers so emails and session material never reach logs
in the clear while keeping them useful for debugging.
"""


def sanitize_email(email: str | None) -> str:
    """
    Mask an email address for logs.

    Rules:
    - None / empty / no "@" → fully masked
    - Otherwise → first char of the local part, domain kept
    """
    if not email or "@" not in email:
        return "***"

    local, _, domain = email.strip().partition("@")
    if not local:
        return f"***@{domain}"
    return f"{local[0]}***@{domain}"


def sanitize_token(token: str | None) -> str:
    """
    Mask an opaque token for logs.

    Rules:
    - None / shorter than 8 chars → fully masked
    - Otherwise → first 4 chars, rest masked
    """
    if not token or len(token) < 8:
        return "***"

    return f"{token[:4]}***"
