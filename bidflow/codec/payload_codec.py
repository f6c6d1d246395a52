"""Base64 payload codec for document submission.

Documents are embedded directly in the workflow request body, so every file
is read in full and converted to base64 text before submission.
"""

import asyncio
import base64
import binascii
import logging
import math
from typing import Callable, Iterable, Optional, Sequence

from bidflow.config.constants import DEFAULT_MIME_TYPE, ENCODING_OVERHEAD_FACTOR
from bidflow.core.exceptions import EncodingError
from bidflow.models.dto import EncodedDocument, EncodingReport, SourceFile
from bidflow.utils.file_detection import (
    HEADER_SIZE,
    detect_file_type_from_bytes,
    matches_declared_type,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


def estimate_encoded_size(size: int) -> int:
    """Estimate base64 transport size of ``size`` raw bytes.

    Only for pre-flight admission checks; the real encoded length differs
    slightly because of padding.
    """
    return math.ceil(size * ENCODING_OVERHEAD_FACTOR)


def estimate_batch_size(files: Iterable[SourceFile]) -> int:
    return estimate_encoded_size(sum(file.size for file in files))


class PayloadCodec:
    """Reads source files and produces EncodedDocuments."""

    async def encode(self, file: SourceFile) -> EncodedDocument:
        """Read ``file`` off the event loop and base64-encode it.

        Raises:
            EncodingError: If the file content cannot be read
        """
        try:
            raw = await asyncio.to_thread(file.read)
        except OSError as e:
            logger.warning("Failed to read %s: %s", file.filename, e)
            raise EncodingError(file.filename, str(e)) from e

        return EncodedDocument(
            filename=file.filename,
            mime_type=file.mime_type or DEFAULT_MIME_TYPE,
            content=base64.b64encode(raw).decode("ascii"),
            size=len(raw),
        )

    async def encode_batch(
        self,
        files: Sequence[SourceFile],
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[EncodedDocument]:
        """Encode files one at a time, preserving order.

        ``on_progress(index, total, filename)`` fires as each file starts,
        with a 1-based index. The first failure aborts the whole batch and
        nothing encoded so far is returned.
        """
        total = len(files)
        documents: list[EncodedDocument] = []

        for index, file in enumerate(files, start=1):
            if on_progress:
                on_progress(index, total, file.filename)
            documents.append(await self.encode(file))

        logger.info(
            "Encoded %d documents (%d raw bytes)",
            total,
            sum(doc.size for doc in documents),
            extra={"document_count": total},
        )
        return documents

    @staticmethod
    def decode(document: EncodedDocument) -> bytes:
        return base64.b64decode(document.content, validate=True)

    async def inspect_encoding(self, file: SourceFile) -> EncodingReport:
        """Encode and decode ``file``, reporting what happened.

        Never raises; failures are carried in ``EncodingReport.error``.
        """
        try:
            document = await self.encode(file)
        except EncodingError as e:
            return EncodingReport(
                filename=file.filename,
                success=False,
                original_size=file.size,
                error=e.details["reason"],
            )

        content = document.content
        report = EncodingReport(
            filename=file.filename,
            success=True,
            original_size=document.size,
            encoded_length=len(content),
            first_chars=content[:50],
            last_chars=content[-50:],
        )
        if document.size:
            report.overhead_percent = round((len(content) / document.size - 1) * 100, 1)

        try:
            decoded = self.decode(document)
        except (binascii.Error, ValueError) as e:
            report.success = False
            report.error = str(e)
            return report

        report.decoded_size = len(decoded)
        header = decoded[:HEADER_SIZE]
        detected = detect_file_type_from_bytes(header)
        report.detected_type = detected[0] if detected else None
        report.type_matches_declared = matches_declared_type(header, document.mime_type)
        if report.type_matches_declared is False:
            logger.warning(
                "%s is declared as %s but its content looks like %s",
                file.filename,
                document.mime_type,
                report.detected_type,
            )
        if document.mime_type == "application/pdf":
            report.pdf_header_valid = decoded.startswith(b"%PDF")

        logger.debug(
            "Encoding check %s: %d bytes -> %d chars, detected=%s",
            file.filename,
            document.size,
            len(content),
            report.detected_type,
        )
        return report
