"""
Content sniffing for submitted documents.

Declared MIME types come from the OS or the caller and are often wrong, so
the codec's diagnostics compare them against the leading bytes. Sniffing is
informational only; validation never rejects a file on it.

Signatures:
- PDF:  %PDF
- DOC:  OLE2 compound file D0 CF 11 E0 A1 B1 1A E1
- DOCX: ZIP local header PK 03 04 (shared by every OOXML container)
- JPEG: FF D8 FF
- PNG:  89 50 4E 47
- GIF:  GIF87a / GIF89a
"""

from typing import Final, Literal

FileType = Literal["pdf", "doc", "docx", "jpeg", "png", "gif"]

SIGNATURES: Final[tuple[tuple[bytes, FileType, str], ...]] = (
    (b"%PDF", "pdf", "application/pdf"),
    (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", "doc", "application/msword"),
    (
        b"PK\x03\x04",
        "docx",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ),
    (b"\xff\xd8\xff", "jpeg", "image/jpeg"),
    (b"\x89PNG", "png", "image/png"),
    (b"GIF87a", "gif", "image/gif"),
    (b"GIF89a", "gif", "image/gif"),
)

# Longest signature above
HEADER_SIZE: Final = 8


def detect_file_type_from_bytes(header: bytes) -> tuple[FileType, str] | None:
    """
    Identify a document from its first bytes.

    Returns:
        (file_type, canonical_mime_type), or None when no signature matches

    Example:
        >>> detect_file_type_from_bytes(b'%PDF-1.7')
        ('pdf', 'application/pdf')
    """
    for signature, file_type, mime_type in SIGNATURES:
        if header.startswith(signature):
            return file_type, mime_type
    return None


def matches_declared_type(header: bytes, declared_mime_type: str) -> bool | None:
    """True/False when the content is recognised, None when it is not."""
    detected = detect_file_type_from_bytes(header)
    if detected is None:
        return None
    return detected[1] == declared_mime_type
