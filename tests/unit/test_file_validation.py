"""Unit tests for document batch validation."""

import pytest

from bidflow.codec.payload_codec import estimate_encoded_size
from bidflow.config.constants import MIB
from bidflow.core.exceptions import PayloadTooLargeError, ValidationError
from bidflow.models.dto import SourceFile
from bidflow.validation.file_validation import (
    UPLOAD_POLICY,
    check_batch_count,
    check_payload_limits,
    validate_batch,
    validate_file,
)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def make_file(name: str, size: int = 1024, mime: str = "application/pdf") -> SourceFile:
    return SourceFile(filename=name, mime_type=mime, size=size)


class TestValidateFile:
    """Tests for per-file validation."""

    @pytest.mark.parametrize(
        "name, mime",
        [
            ("bid.pdf", "application/pdf"),
            ("bid.doc", "application/msword"),
            ("bid.docx", DOCX_MIME),
        ],
    )
    def test_allowed_documents_pass(self, name, mime):
        """Test allowed types under the size limit pass."""
        assert validate_file(make_file(name, mime=mime)) is None

    def test_mime_match_alone_is_enough(self):
        """Test a known MIME type passes even without an extension."""
        assert validate_file(make_file("scan", mime="application/pdf")) is None

    def test_extension_match_alone_is_enough(self):
        """Test a known extension passes with an empty MIME type."""
        assert validate_file(make_file("Quote.PDF", mime="")) is None
        assert validate_file(make_file("quote.docx", mime="application/octet-stream")) is None

    def test_unsupported_format(self):
        """Test neither MIME nor extension matching is rejected."""
        message = validate_file(make_file("notes.txt", mime="text/plain"))

        assert message is not None
        assert "notes.txt" in message
        assert "not a supported format" in message

    def test_images_rejected_for_documents(self):
        """Test images are outside the strict document policy."""
        assert validate_file(make_file("photo.png", mime="image/png")) is not None

    def test_too_large(self):
        """Test files over 10 MiB are rejected with the filename."""
        message = validate_file(make_file("huge.pdf", size=10 * MIB + 1))

        assert message is not None
        assert "huge.pdf" in message
        assert "too large" in message

    def test_exactly_at_limit_passes(self):
        """Test a file of exactly 10 MiB passes."""
        assert validate_file(make_file("edge.pdf", size=10 * MIB)) is None

    def test_size_checked_before_format(self):
        """Test the first violation (size) wins."""
        message = validate_file(make_file("huge.exe", size=11 * MIB, mime="application/x-msdownload"))
        assert "too large" in message

    def test_upload_policy_accepts_images(self):
        """Test the wider upload policy takes images up to 20 MiB."""
        assert validate_file(make_file("photo.png", size=15 * MIB, mime="image/png"), UPLOAD_POLICY) is None
        assert validate_file(make_file("photo.gif", size=21 * MIB, mime="image/gif"), UPLOAD_POLICY) is not None

    def test_does_not_mutate_file(self):
        """Test validation leaves the file untouched."""
        file = make_file("bid.pdf")
        before = file.model_dump()
        validate_file(file)
        assert file.model_dump() == before


class TestCheckPayloadLimits:
    """Tests for aggregate payload estimation."""

    def test_empty_list_is_valid(self):
        """Test an empty list is always valid."""
        assert check_payload_limits([]).valid is True

    def test_three_four_mib_files_rejected(self):
        """Test 3 x 4 MiB (~16 MB encoded) exceeds the 5 MB ceiling."""
        files = [make_file(f"bid{i}.pdf", size=4 * MIB) for i in range(3)]

        result = check_payload_limits(files)

        assert result.valid is False
        assert "~16.0MB" in result.message
        assert "5MB limit" in result.message

    def test_small_batch_valid(self):
        """Test a batch under the ceiling is valid."""
        files = [make_file("a.pdf", size=MIB), make_file("b.pdf", size=2 * MIB)]
        result = check_payload_limits(files)

        assert result.valid is True
        assert result.message is None
        assert result.estimated_size == estimate_encoded_size(3 * MIB)

    def test_adding_files_never_revalidates(self):
        """Test validity only ever goes from True to False as files are added."""
        files = []
        seen_invalid = False
        for i in range(8):
            files.append(make_file(f"bid{i}.pdf", size=700 * 1024))
            valid = check_payload_limits(files).valid
            if seen_invalid:
                assert valid is False
            seen_invalid = seen_invalid or not valid
        assert seen_invalid


class TestValidateBatch:
    """Tests for whole-batch validation."""

    def test_count_ceiling(self):
        """Test more than 5 documents is rejected."""
        files = [make_file(f"bid{i}.pdf") for i in range(6)]

        with pytest.raises(ValidationError) as exc_info:
            validate_batch(files)

        assert "up to 5" in exc_info.value.message

    def test_empty_batch(self):
        """Test an empty batch is rejected."""
        assert check_batch_count([]) is not None
        with pytest.raises(ValidationError):
            validate_batch([])

    def test_collects_every_file_error(self):
        """Test each bad file contributes a message."""
        files = [
            make_file("ok.pdf"),
            make_file("notes.txt", mime="text/plain"),
            make_file("huge.pdf", size=11 * MIB),
        ]

        with pytest.raises(ValidationError) as exc_info:
            validate_batch(files)

        errors = exc_info.value.errors
        assert len(errors) == 2
        assert any("notes.txt" in e for e in errors)
        assert any("huge.pdf" in e for e in errors)

    def test_aggregate_too_large(self):
        """Test individually valid files can still exceed the payload ceiling."""
        files = [make_file(f"bid{i}.pdf", size=4 * MIB) for i in range(3)]

        with pytest.raises(PayloadTooLargeError):
            validate_batch(files)

    def test_valid_batch_returns_estimate(self):
        """Test a valid batch returns the payload check."""
        result = validate_batch([make_file("bid.pdf", size=1000)])
        assert result.valid is True
        assert result.estimated_size == 1330
