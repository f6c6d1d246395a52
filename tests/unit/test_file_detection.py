"""Unit tests for content sniffing."""

import pytest

from bidflow.utils.file_detection import detect_file_type_from_bytes, matches_declared_type

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.mark.parametrize(
    "header, expected",
    [
        (b"%PDF-1.7\n", "pdf"),
        (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", "doc"),
        (b"PK\x03\x04\x14\x00\x06\x00", "docx"),
        (b"\xff\xd8\xff\xe0\x00\x10JF", "jpeg"),
        (b"\x89PNG\r\n\x1a\n", "png"),
        (b"GIF89a\x01\x00", "gif"),
    ],
)
def test_detects_known_signatures(header, expected):
    assert detect_file_type_from_bytes(header)[0] == expected


def test_unknown_and_short_headers():
    assert detect_file_type_from_bytes(b"hello world") is None
    assert detect_file_type_from_bytes(b"%P") is None
    assert detect_file_type_from_bytes(b"") is None


def test_matches_declared_type():
    assert matches_declared_type(b"PK\x03\x04rest", DOCX_MIME) is True
    assert matches_declared_type(b"%PDF-1.4", "application/msword") is False
    assert matches_declared_type(b"plain text", "application/pdf") is None
