# backend/modules/intake/text_extractor.py
"""
Plain-text extraction for uploaded resumes and job descriptions.

Supported: .txt (decoded directly), .pdf (pypdf), .docx / .doc (python-docx).
Legacy binary .doc files are not readable by python-docx and surface as an
extraction error, so the candidate is asked to paste the text instead.
"""

import io
import logging
import os
from urllib.parse import urlparse

import docx
import requests
from pypdf import PdfReader

from config import Config
from utils.errors import ExtractionError, UnsupportedFileTypeError, UpstreamServiceError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("txt", "pdf", "docx", "doc")


def file_extension(file_name: str) -> str:
    _, ext = os.path.splitext(file_name or "")
    return ext.lstrip(".").lower()


def _decode_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _pdf_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    return "\n".join((page.extract_text() or "") for page in reader.pages)


def _docx_text(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    lines = [p.text for p in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            lines.append("\t".join(cell.text for cell in row.cells))
    return "\n".join(lines)


_EXTRACTORS = {
    "txt": _decode_text,
    "pdf": _pdf_text,
    "docx": _docx_text,
    "doc": _docx_text,
}


def extract_text_by_type(data: bytes, file_type: str) -> str:
    extractor = _EXTRACTORS.get(file_type)
    if extractor is None:
        raise UnsupportedFileTypeError(file_type)

    logger.debug("Extracting text from %s file, size: %d bytes", file_type, len(data))
    try:
        text = extractor(data)
    except Exception as e:
        logger.exception("%s parsing failed", file_type.upper())
        raise ExtractionError(f"Failed to extract text from {file_type} file", details=str(e)) from e

    logger.debug("%s parsing successful, text length: %d", file_type.upper(), len(text))
    return text


def extract_text(file_name: str, data: bytes) -> str:
    """Extract text from an uploaded file based on its extension."""
    return extract_text_by_type(data, file_extension(file_name))


def detect_url_file_type(url: str, content_type: str = "") -> str:
    """
    Extension from the URL path first; otherwise guess from the content type.
    Anything unrecognised is treated as text.
    """
    ext = file_extension(urlparse(url).path)
    if ext in SUPPORTED_EXTENSIONS:
        return ext
    if ext:
        return "txt"

    content_type = (content_type or "").lower()
    if "pdf" in content_type:
        return "pdf"
    if "document" in content_type:
        return "docx"
    return "txt"


def extract_text_from_url(url: str) -> str:
    """Download a previously uploaded file and extract its text."""
    try:
        response = requests.get(url, timeout=Config.HTTP_TIMEOUT)
    except requests.RequestException as e:
        raise UpstreamServiceError("Failed to download file", details=str(e)) from e

    if not response.ok:
        raise ExtractionError("Failed to download file", details=f"{response.status_code} {response.reason}")

    file_type = detect_url_file_type(url, response.headers.get("content-type", ""))
    return extract_text_by_type(response.content, file_type)
