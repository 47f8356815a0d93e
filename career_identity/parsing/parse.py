from __future__ import annotations

from io import BytesIO
from pathlib import PurePath

from docx import Document
from pypdf import PdfReader

from .models import SUPPORTED_TYPES, ParsedDoc, ParsedSection


class DocumentParseError(ValueError):
    pass


class UnsupportedDocumentType(DocumentParseError):
    pass


def detect_source_type(filename: str) -> str:
    extension = PurePath(filename or "").suffix.lower().lstrip(".")
    if extension not in SUPPORTED_TYPES:
        raise UnsupportedDocumentType(
            f"Unsupported file type '.{extension}'. Supported types: .pdf, .docx, .txt"
        )
    return extension


def _parse_txt(content: bytes) -> tuple[list[ParsedSection], list[str]]:
    text = content.decode("utf-8", errors="replace")
    return ([ParsedSection(text=text)] if text.strip() else []), []


def _parse_pdf(content: bytes) -> tuple[list[ParsedSection], list[str]]:
    try:
        reader = PdfReader(BytesIO(content))
        sections: list[ParsedSection] = []
        for index, page in enumerate(reader.pages, start=1):
            page_text = (page.extract_text() or "").strip()
            if page_text:
                sections.append(ParsedSection(page=index, text=page_text))
    except Exception as exc:
        raise DocumentParseError(f"PDF parsing failed: {exc}") from exc
    warnings = [] if sections else ["No extractable text found in PDF."]
    return sections, warnings


def _parse_docx(content: bytes) -> tuple[list[ParsedSection], list[str]]:
    try:
        document = Document(BytesIO(content))
    except Exception as exc:
        raise DocumentParseError(f"DOCX parsing failed: {exc}") from exc
    sections = [
        ParsedSection(text=paragraph.text.strip())
        for paragraph in document.paragraphs
        if paragraph.text and paragraph.text.strip()
    ]
    warnings = [] if sections else ["No extractable text found in DOCX."]
    return sections, warnings


_PARSERS = {
    "txt": _parse_txt,
    "pdf": _parse_pdf,
    "docx": _parse_docx,
}


def parse_upload(content: bytes, filename: str) -> ParsedDoc:
    """Extract plain text from an uploaded resume."""
    source_type = detect_source_type(filename)
    sections, warnings = _PARSERS[source_type](content)
    return ParsedDoc(
        filename=filename,
        source_type=source_type,
        text="\n".join(section.text for section in sections),
        sections=sections,
        parsing_warnings=warnings,
    )
