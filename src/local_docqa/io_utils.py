from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF
from docx import Document

TEXT_SUFFIXES = frozenset({".txt", ".md", ".markdown", ".csv", ".json", ".log", ".rst"})


def extract_pdf_text(path: str | Path) -> str:
    """Concatenate the text of every PDF page, pages separated by a blank line."""
    doc = fitz.open(str(path))
    try:
        return "".join(page.get_text("text") + "\n\n" for page in doc)
    finally:
        doc.close()


def extract_docx_text(path: str | Path) -> str:
    """Join the paragraph text of a Word document, one paragraph per line."""
    doc = Document(str(path))
    return "\n".join(paragraph.text for paragraph in doc.paragraphs)


def load_document_text(path: str | Path) -> str:
    """Read a document from disk as a single plaintext blob.

    Args:
        path: Plain text, PDF or DOCX file.

    Returns:
        The document text.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file type is not supported.
    """
    source = Path(path)
    if not source.is_file():
        raise FileNotFoundError(f"No such document: {source}")

    suffix = source.suffix.lower()
    if suffix == ".pdf":
        return extract_pdf_text(source)
    if suffix == ".docx":
        return extract_docx_text(source)
    if suffix in TEXT_SUFFIXES:
        return source.read_text(encoding="utf-8", errors="replace")
    raise ValueError(f"Unsupported document type: {suffix or source.name}")
