"""Unit tests for the command line interface."""

import json
from datetime import timedelta

import pytest

from bidflow import __main__ as entry
from bidflow.cli import build_parser, main
from bidflow.core.settings import app_settings
from bidflow.models.dto import VerifiedSession, utcnow
from bidflow.session.session_store import create_default_store

PDF_BYTES = b"%PDF-1.4\n%%EOF\n"


@pytest.fixture
def state_dir(tmp_path, monkeypatch):
    path = tmp_path / "state"
    monkeypatch.setattr(app_settings, "BIDFLOW_STATE_DIR", str(path))
    return path


class TestParser:
    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_analyze_options(self):
        args = build_parser().parse_args(
            ["analyze", "a.pdf", "b.docx", "--notes", "cheap", "--no-wait"]
        )
        assert args.files == ["a.pdf", "b.docx"]
        assert args.notes == "cheap"
        assert args.no_wait is True


class TestCheckCommand:
    """Tests for ``bidflow check``."""

    def test_valid_files(self, tmp_path, capsys):
        path = tmp_path / "bid.pdf"
        path.write_bytes(PDF_BYTES)

        assert main(["check", str(path)]) == 0
        assert "Estimated payload" in capsys.readouterr().out

    def test_unsupported_file(self, tmp_path, capsys):
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        assert main(["check", str(path)]) == 1
        assert "not a supported format" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["check", str(tmp_path / "missing.pdf")]) == 2
        assert "File not found" in capsys.readouterr().err

    def test_unreadable_file(self, monkeypatch, capsys):
        """Test permission errors are reported without a traceback."""

        def refuse(paths):
            raise PermissionError(13, "Permission denied", paths[0])

        monkeypatch.setattr("bidflow.cli._load_files", refuse)

        assert main(["check", "locked.pdf"]) == 2
        assert "Cannot read locked.pdf: Permission denied" in capsys.readouterr().err

    def test_inspect(self, tmp_path, capsys):
        path = tmp_path / "bid.pdf"
        path.write_bytes(PDF_BYTES)

        assert main(["check", "--inspect", str(path)]) == 0

        out = capsys.readouterr().out
        report = json.loads(out[out.index("{"):])
        assert report["pdf_header_valid"] is True


class TestAnalyzeCommand:
    def test_priorities_must_be_object(self, tmp_path, capsys):
        path = tmp_path / "bid.pdf"
        path.write_bytes(PDF_BYTES)

        assert main(["analyze", str(path), "--priorities", "[1, 2]"]) == 2
        assert "JSON object" in capsys.readouterr().err


class TestVerifyCommand:
    """Tests for ``bidflow verify`` against the local session file."""

    def test_status_without_session(self, state_dir, capsys):
        assert main(["verify", "status", "user@example.com"]) == 1
        assert "not verified" in capsys.readouterr().out

    def test_status_with_session(self, state_dir, capsys):
        create_default_store().set(
            VerifiedSession(
                email="User@Example.com",
                session_token="tok",
                expires_at=utcnow() + timedelta(hours=1),
            )
        )

        assert main(["verify", "status", "user@example.com"]) == 0
        assert (state_dir / "storage.json").exists()

    def test_clear(self, state_dir):
        create_default_store().set(
            VerifiedSession(
                email="user@example.com",
                session_token="tok",
                expires_at=utcnow() + timedelta(hours=1),
            )
        )

        assert main(["verify", "clear"]) == 0
        assert main(["verify", "status", "user@example.com"]) == 1


class TestModuleEntryPoint:
    def test_no_arguments_prints_help(self, capsys):
        assert entry.main([]) == 2
        assert "analyze" in capsys.readouterr().out
