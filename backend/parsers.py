# parsers.py
from __future__ import annotations
import io
import logging
from typing import List, Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from errors import InputError

LOG = logging.getLogger("parsers")

MANUAL_INPUT_PLACEHOLDER = "请手动输入简历内容"
PDF_FAILED_MSG = "PDF文件解析失败，请确保文件格式正确"


def _clean_text(b: bytes) -> str:
    return b.decode("utf-8", errors="ignore")


class PdfTextExtractor:
    """Extract visible text from PDF bytes with pypdf (no OCR of images).

    Built once at startup and handed to whatever needs PDF parsing.
    """

    def __init__(self, page_separator: str = "\n"):
        self.page_separator = page_separator

    def extract(self, file_bytes: bytes) -> str:
        try:
            reader = PdfReader(io.BytesIO(file_bytes))
            chunks: List[str] = []
            for page in reader.pages:
                chunks.append(page.extract_text() or "")
        except (PyPdfError, ValueError, OSError) as e:
            LOG.warning("PdfReader failed: %s", e)
            raise InputError(PDF_FAILED_MSG, detail=str(e)) from e
        text = self.page_separator.join(chunks).strip()
        LOG.info("PDF text length: %d chars from %d pages", len(text), len(chunks))
        return text


def _ext(filename: Optional[str]) -> str:
    name = filename or ""
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def is_pdf(filename: Optional[str], mimetype: Optional[str]) -> bool:
    return (mimetype or "") == "application/pdf" or _ext(filename) == "pdf"


def is_plain_text(filename: Optional[str], mimetype: Optional[str]) -> bool:
    return (mimetype or "") == "text/plain" or _ext(filename) == "txt"


def extract_resume_text(
    filename: Optional[str],
    mimetype: Optional[str],
    data: bytes,
    pdf_extractor: PdfTextExtractor,
) -> str:
    """Return resume text for an upload.

    PDFs go through the extractor, plain text is decoded as UTF-8, and any
    other type yields a prompt asking the user to type the resume in.
    """
    if is_pdf(filename, mimetype):
        return pdf_extractor.extract(data)
    if is_plain_text(filename, mimetype):
        return _clean_text(data).strip()
    LOG.info("unsupported resume type %r (%s), asking for manual input", filename, mimetype)
    return MANUAL_INPUT_PLACEHOLDER
