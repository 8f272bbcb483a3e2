"""
Offering memorandum text extraction.
"""

import io
import logging
from typing import BinaryIO, Union

import pdfplumber

from underwriter.ingest import DocumentExtractionError

logger = logging.getLogger(__name__)


def extract_text(source: Union[bytes, BinaryIO]) -> str:
    """
    Extract plain text from a PDF.

    Args:
        source: PDF contents or a binary file object

    Returns:
        Text of all pages, newline separated

    Raises:
        DocumentExtractionError: If the PDF is unreadable or has no text
    """
    if isinstance(source, bytes):
        source = io.BytesIO(source)

    try:
        with pdfplumber.open(source) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        logger.error(f"Error reading PDF: {str(e)}")
        raise DocumentExtractionError("Could not extract text from PDF") from e

    text = "\n".join(pages)
    if not text.strip():
        raise DocumentExtractionError("Could not extract text from PDF")

    logger.info(f"Extracted {len(text)} characters from {len(pages)} PDF pages")
    return text
