"""Uploaded resume validation for the resume checker."""

from pathlib import Path
from typing import Dict, Set
import logging

from interview_coach.core.config import settings


class FileValidator:
    """
    Validates uploaded resume files before text extraction.

    Responsibilities:
    - Reject empty and oversized uploads
    - Verify file extension
    - Validate MIME type via magic bytes
    """

    VALID_EXTENSIONS: Set[str] = {'.pdf', '.txt'}

    # Magic bytes for MIME type detection
    MIME_SIGNATURES: Dict[str, bytes] = {
        '.pdf': b'%PDF',
    }

    def __init__(self, logger: logging.Logger = None, max_size_mb: int = None):
        self.logger = logger or logging.getLogger(__name__)
        max_size_mb = settings.MAX_FILE_SIZE_MB if max_size_mb is None else max_size_mb
        self.max_file_size_bytes = max_size_mb * 1024 * 1024

    def validate(self, filename: str, content: bytes) -> None:
        """
        Validate an uploaded resume.

        Raises:
            ValueError: If the upload is empty, too large, has an unsupported
                extension or its content does not match the extension.
        """
        if not filename:
            raise ValueError("No resume file provided.")

        file_size = len(content)
        if file_size == 0:
            raise ValueError(f"Resume file is empty: {filename}")

        if file_size > self.max_file_size_bytes:
            max_mb = self.max_file_size_bytes / (1024 * 1024)
            actual_mb = file_size / (1024 * 1024)
            raise ValueError(
                f"Resume file too large: {actual_mb:.1f}MB exceeds {max_mb:.0f}MB limit"
            )

        extension = Path(filename).suffix.lower()
        if extension not in self.VALID_EXTENSIONS:
            raise ValueError(
                f"Invalid file extension: {extension}. "
                f"Supported: {', '.join(sorted(self.VALID_EXTENSIONS))}"
            )

        expected_signature = self.MIME_SIGNATURES.get(extension)
        if expected_signature is not None and not content.startswith(expected_signature):
            raise ValueError(
                f"File content does not match {extension} format. "
                f"File may be corrupted or have wrong extension."
            )

        self.logger.info(f"Resume validation passed: {filename} ({file_size / 1024:.1f}KB)")
