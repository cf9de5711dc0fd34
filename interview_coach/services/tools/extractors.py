"""Resume text extraction for the resume checker."""

import io
import logging
from pathlib import Path

import pypdf
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)


def file_text_extractor(filename: str, content: bytes) -> str:
    """
    Extracts text from an uploaded resume (PDF or plain text).

    Args:
        filename: Original file name, used to pick the extraction method.
        content: Raw file bytes.

    Returns:
        The extracted text, stripped.

    Raises:
        ValueError: If the file type is unsupported or no text could be read.
    """
    suffix = Path(filename).suffix.lower()

    if suffix == ".txt":
        text = content.decode("utf-8", errors="replace")
    elif suffix == ".pdf":
        try:
            reader = pypdf.PdfReader(io.BytesIO(content))
            text = "\n".join(page.extract_text() or "" for page in reader.pages)
        except PdfReadError as e:
            logger.error(f"Could not read PDF {filename}: {e}")
            raise ValueError(f"Could not read PDF: {e}") from e
        logger.info(f"Extracted {len(text)} characters from {len(reader.pages)} pages in {filename}")
    else:
        raise ValueError(f"Unsupported file type: {suffix}. Only PDF and TXT files are supported.")

    text = text.strip()
    if not text:
        raise ValueError("No text could be extracted from the resume.")
    return text
