"""
Document Processor Service

Extracts plain text from uploaded RFP documents (PDF, DOCX, plain text) so
they can be drafted into an RFP.
"""

import io
import logging
import re
from pathlib import Path
from typing import Optional

# PDF Processing
from PyPDF2 import PdfReader

# DOCX Processing
from docx import Document

logger = logging.getLogger("rfp_manager.services.documents")


PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"

SUPPORTED_MIME_TYPES = (PDF_MIME, DOCX_MIME, TEXT_MIME)

# Upload filenames are used when the client sends a generic content type
_SUFFIX_MIME = {
    ".pdf": PDF_MIME,
    ".docx": DOCX_MIME,
    ".txt": TEXT_MIME,
}


class DocumentProcessor:
    """
    Processes RFP documents and extracts text.

    Features:
    - PDF text extraction with PyPDF2
    - DOCX paragraph and table extraction with python-docx
    - UTF-8 plain text passthrough
    """

    def process_bytes(self, file_bytes: bytes, mime_type: str) -> dict:
        """
        Extract text from document bytes.

        Args:
            file_bytes: Document content
            mime_type: One of SUPPORTED_MIME_TYPES

        Returns:
            Dict with extracted text and metadata

        Raises:
            ValueError: If the type is not supported
        """
        if mime_type == PDF_MIME:
            return self._process_pdf_bytes(file_bytes)
        elif mime_type == DOCX_MIME:
            return self._process_docx_bytes(file_bytes)
        elif mime_type == TEXT_MIME:
            text = file_bytes.decode("utf-8", errors="replace")
            return {"format": "text", "text": text.strip(), "warnings": []}
        else:
            raise ValueError(f"Unsupported file type: {mime_type}")

    def _process_pdf_bytes(self, pdf_bytes: bytes) -> dict:
        result = {
            "format": "pdf",
            "text": "",
            "page_count": 0,
            "warnings": []
        }

        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            result["page_count"] = len(reader.pages)
        except Exception as e:
            raise ValueError(f"Unreadable PDF: {e}") from e

        pages = []
        for i, page in enumerate(reader.pages):
            page_text = self._clean_text(page.extract_text() or "")
            if not page_text:
                result["warnings"].append(f"No text on page {i + 1} (scanned?)")
            pages.append(page_text)

        result["text"] = "\n\n".join(text for text in pages if text)
        return result

    def _process_docx_bytes(self, docx_bytes: bytes) -> dict:
        result = {
            "format": "docx",
            "text": "",
            "paragraph_count": 0,
            "warnings": []
        }

        try:
            doc = Document(io.BytesIO(docx_bytes))
        except Exception as e:
            raise ValueError(f"Unreadable DOCX: {e}") from e

        paragraphs = [para.text.strip() for para in doc.paragraphs if para.text.strip()]
        result["text"] = "\n\n".join(paragraphs)
        result["paragraph_count"] = len(paragraphs)

        table_text = []
        for table in doc.tables:
            for row in table.rows:
                row_text = " | ".join(cell.text.strip() for cell in row.cells)
                if row_text.strip(" |"):
                    table_text.append(row_text)

        if table_text:
            result["text"] += "\n\n[Table Content]\n" + "\n".join(table_text)

        return result

    def _clean_text(self, text: str) -> str:
        """Collapse runs of spaces, keep paragraph breaks."""
        if not text:
            return ""
        text = re.sub(r"[ \t]+", " ", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()


def resolve_mime_type(content_type: Optional[str], filename: Optional[str]) -> str:
    """Prefer a supported declared type, else guess from the file suffix."""
    declared = (content_type or "").split(";")[0].strip().lower()
    if declared in SUPPORTED_MIME_TYPES:
        return declared
    suffix = Path(filename or "").suffix.lower()
    return _SUFFIX_MIME.get(suffix, declared or "application/octet-stream")


_processor = None

def get_processor() -> DocumentProcessor:
    """Get or create the document processor instance."""
    global _processor
    if _processor is None:
        _processor = DocumentProcessor()
    return _processor


def extract_text(file_bytes: bytes, mime_type: str) -> str:
    """
    Convenience function to extract text from document bytes.

    Raises:
        ValueError: Unsupported or unreadable document
    """
    result = get_processor().process_bytes(file_bytes, mime_type)
    for warning in result["warnings"]:
        logger.warning(warning)
    return result["text"]
