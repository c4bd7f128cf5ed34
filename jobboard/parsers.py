"""Résumé upload parsing.

Supports plain text and PDF (pdfplumber with pypdf fallback).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO

import pdfplumber
from pypdf import PdfReader

logger = logging.getLogger(__name__)


class FileType(str, Enum):
    """Supported file types."""
    PDF = "pdf"
    TEXT = "text"
    UNKNOWN = "unknown"


class ParseError(Exception):
    """Raised when document parsing fails."""
    pass


@dataclass
class ParsedDocument:
    """Result of document parsing."""
    text: str
    file_type: FileType
    metadata: dict[str, Any] = field(default_factory=dict)


def detect_file_type(filename: str, content: bytes | None = None) -> FileType:
    """Detect file type from filename, falling back to the PDF magic number."""
    filename_lower = filename.lower()

    if filename_lower.endswith('.pdf'):
        return FileType.PDF
    elif filename_lower.endswith(('.txt', '.md')):
        return FileType.TEXT

    if content and content.startswith(b'%PDF'):
        return FileType.PDF

    return FileType.UNKNOWN


def _join_pages(pages) -> str:
    parts = []
    for page in pages:
        page_text = page.extract_text()
        if page_text:
            parts.append(page_text)
    return "\n\n".join(parts)


def extract_text_from_pdf(file_obj: BinaryIO) -> str:
    """Extract text from a PDF using native text extraction.

    Raises:
        ParseError: If both extractors fail
    """
    try:
        with pdfplumber.open(file_obj) as pdf:
            return _join_pages(pdf.pages)
    except Exception as e:
        logger.warning(f"pdfplumber extraction failed: {e}, trying pypdf")

    try:
        file_obj.seek(0)
        return _join_pages(PdfReader(file_obj).pages)
    except Exception as e:
        logger.error(f"pypdf extraction also failed: {e}")
        raise ParseError(f"Failed to parse PDF: {e}") from e


def parse_resume(file_obj: BinaryIO, filename: str) -> ParsedDocument:
    """Parse an uploaded résumé file into text.

    Args:
        file_obj: Binary file object
        filename: Original filename

    Returns:
        ParsedDocument with extracted text

    Raises:
        ParseError: If the file type is unsupported or no text could be extracted
    """
    head = file_obj.read(4)
    file_obj.seek(0)
    file_type = detect_file_type(filename, head)

    if file_type == FileType.PDF:
        text = extract_text_from_pdf(file_obj)
    elif file_type == FileType.TEXT:
        text = file_obj.read().decode("utf-8", errors="replace")
    else:
        raise ParseError(f"Unsupported file type: {filename}")

    if not text.strip():
        raise ParseError(f"No text could be extracted from {filename}")

    logger.info(f"Parsed {file_type.value} resume {filename}: {len(text)} characters")
    return ParsedDocument(text=text, file_type=file_type, metadata={"filename": filename})
