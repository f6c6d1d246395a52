"""Command line interface for document analysis and email verification."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Sequence

from bidflow.clients.verification_client import VerificationClient
from bidflow.codec.payload_codec import PayloadCodec
from bidflow.config.constants import MIB
from bidflow.core.logging_config import configure_structured_logging
from bidflow.core.settings import app_settings
from bidflow.models.dto import AnalysisOutcome, SourceFile, SubmissionMetadata
from bidflow.services.analysis import AnalysisService
from bidflow.session.session_store import create_default_store
from bidflow.validation.file_validation import check_batch_count, check_payload_limits, validate_file

logger = logging.getLogger(__name__)


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Submit bid documents for analysis and manage report access verification",
    )
    parser.add_argument(
        "--log-level",
        default=app_settings.LOG_LEVEL,
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=app_settings.LOG_JSON,
        help="Emit structured JSON log lines",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    analyze = commands.add_parser("analyze", help="Validate, submit and wait for an analysis")
    analyze.add_argument("files", nargs="+", help="PDF or Word documents (up to 5)")
    analyze.add_argument("--notes", default="", help="Free-text notes for the analysis")
    analyze.add_argument(
        "--priorities",
        default="{}",
        help='JSON object of priority weights, e.g. \'{"price": 5}\'',
    )
    analyze.add_argument("--project-id", default=None, help="Project identifier")
    analyze.add_argument("--callback-url", default=None, help="Override the callback URL")
    analyze.add_argument(
        "--no-wait",
        action="store_true",
        help="Return right after the job is created instead of polling",
    )

    check = commands.add_parser("check", help="Validate files and estimate the payload size")
    check.add_argument("files", nargs="+")
    check.add_argument(
        "--inspect",
        action="store_true",
        help="Also encode and decode each file and report the result",
    )

    verify = commands.add_parser("verify", help="Email verification for report access")
    verify_commands = verify.add_subparsers(dest="verify_command", required=True)
    request = verify_commands.add_parser("request", help="Email a one-time code")
    request.add_argument("email")
    confirm = verify_commands.add_parser("confirm", help="Submit the emailed code")
    confirm.add_argument("email")
    confirm.add_argument("code")
    status = verify_commands.add_parser("status", help="Is this email currently verified?")
    status.add_argument("email")
    verify_commands.add_parser("clear", help="Forget the cached verified session")

    return parser


def _load_files(paths: Sequence[str]) -> list[SourceFile]:
    return [SourceFile.from_path(path) for path in paths]


def _print_outcome(outcome: AnalysisOutcome) -> None:
    print(json.dumps(outcome.model_dump(mode="json"), indent=2, ensure_ascii=False))


def _run_check(args: argparse.Namespace) -> int:
    files = _load_files(args.files)
    problems = [msg for msg in [check_batch_count(files)] if msg]
    problems += [msg for msg in (validate_file(f) for f in files) if msg]
    payload = check_payload_limits(files)
    if not payload.valid:
        problems.append(payload.message)

    print(f"Estimated payload: {payload.estimated_size / MIB:.1f}MB for {len(files)} file(s)")
    for problem in problems:
        print(f"  - {problem}")

    if args.inspect:
        codec = PayloadCodec()
        for file in files:
            report = asyncio.run(codec.inspect_encoding(file))
            print(json.dumps(report.model_dump(), indent=2))

    return 1 if problems else 0


def _run_analyze(args: argparse.Namespace) -> int:
    try:
        priorities = json.loads(args.priorities)
    except ValueError:
        print("--priorities must be a JSON object", file=sys.stderr)
        return 2
    if not isinstance(priorities, dict):
        print("--priorities must be a JSON object", file=sys.stderr)
        return 2

    metadata = SubmissionMetadata(
        notes=args.notes,
        priorities=priorities,
        project_id=args.project_id,
        callback_url=args.callback_url,
    )

    def on_progress(index: int, total: int, filename: str) -> None:
        logger.info("Encoding %d/%d: %s", index, total, filename)

    service = AnalysisService()
    outcome = asyncio.run(
        service.run(
            _load_files(args.files), metadata, on_progress=on_progress, wait=not args.no_wait
        )
    )
    _print_outcome(outcome)
    return 0 if outcome.success else 1


def _run_verify(args: argparse.Namespace) -> int:
    client = VerificationClient(create_default_store())

    if args.verify_command == "request":
        result = asyncio.run(client.request_code(args.email))
        if not result.success:
            print(result.error, file=sys.stderr)
            return 1
        print(f"Verification code sent to {args.email}")
        if result.code:
            print(f"Dev code: {result.code}")
        return 0

    if args.verify_command == "confirm":
        result = asyncio.run(client.submit_code(args.email, args.code))
        if not result.success:
            print(result.error, file=sys.stderr)
            return 1
        print(f"Verified {result.email} until {result.expires_at.isoformat()}")
        return 0

    if args.verify_command == "status":
        verified = client.is_verified(args.email)
        print("verified" if verified else "not verified")
        return 0 if verified else 1

    client.clear_session()
    print("Verified session cleared")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_structured_logging(level=args.log_level, json_format=args.json_logs)

    try:
        if args.command == "check":
            return _run_check(args)
        if args.command == "analyze":
            return _run_analyze(args)
        return _run_verify(args)
    except FileNotFoundError as e:
        print(f"File not found: {e.filename}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"Cannot read {e.filename}: {e.strerror or e}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
