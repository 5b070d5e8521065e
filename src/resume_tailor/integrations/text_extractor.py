"""Plain-text extraction from uploaded PDF and DOCX resumes."""

from __future__ import annotations

import html
import io
import re
import zipfile
from typing import Protocol

import structlog
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

log = structlog.get_logger()

FILE_TYPE_PDF = "pdf"
FILE_TYPE_DOCX = "docx"

MIME_TYPES = {
    "application/pdf": FILE_TYPE_PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FILE_TYPE_DOCX,
}

_PARAGRAPH_RE = re.compile(r"<w:p(?:\s[^>]*)?>")
_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


class TextExtractionError(Exception):
    """Raised when a document cannot be opened or parsed."""


class TextExtractor(Protocol):
    def extract(self, data: bytes, file_type: str) -> str: ...


class DocumentTextExtractor:
    """PyPDF2 for PDFs, the document.xml part for DOCX."""

    def extract(self, data: bytes, file_type: str) -> str:
        if file_type == FILE_TYPE_PDF:
            return self._extract_pdf(data)
        if file_type == FILE_TYPE_DOCX:
            return self._extract_docx(data)
        raise TextExtractionError(f"Unsupported file type: {file_type}")

    @staticmethod
    def _extract_pdf(data: bytes) -> str:
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = list(reader.pages)
        except (PdfReadError, ValueError, OSError) as exc:
            raise TextExtractionError("Unreadable PDF") from exc

        texts = []
        for number, page in enumerate(pages):
            try:
                texts.append(page.extract_text() or "")
            except (PdfReadError, KeyError, ValueError) as exc:
                log.warning("pdf_page_skipped", page=number, error=str(exc))
        return "\n".join(texts).strip()

    @staticmethod
    def _extract_docx(data: bytes) -> str:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                xml = archive.read("word/document.xml").decode("utf-8", errors="ignore")
        except (zipfile.BadZipFile, KeyError) as exc:
            raise TextExtractionError("Unreadable DOCX") from exc

        text = _PARAGRAPH_RE.sub("\n", xml)
        text = html.unescape(_TAG_RE.sub(" ", text))
        lines = [_SPACE_RE.sub(" ", line).strip() for line in text.split("\n")]
        return "\n".join(line for line in lines if line).strip()
