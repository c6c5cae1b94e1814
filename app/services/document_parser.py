"""Text extraction for uploaded course files using PyMuPDF."""

import logging
import re

import pymupdf  # PyMuPDF

logger = logging.getLogger(__name__)

# Control characters that Postgres TEXT/VARCHAR cannot store (NUL, etc.)
_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

_TEXT_MIME_TYPES = {
    "application/json",
    "application/javascript",
    "application/x-javascript",
    "application/xml",
}


class DocumentParser:
    """Service for extracting searchable text from course files."""

    @staticmethod
    def extract_pdf_text(pdf_bytes: bytes) -> dict:
        """
        Extract text from PDF bytes.

        Returns:
            Dictionary with:
                - text: Extracted text from all pages
                - page_count: Number of pages in the PDF
                - status: 'success' or 'failed'
                - error: Error message if status is 'failed' (optional)
        """
        try:
            doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
            text_pages = [page.get_text() for page in doc]
            page_count = len(doc)
            doc.close()

            return {
                "text": _ILLEGAL_CHARS.sub("", "\n\n".join(text_pages)),
                "page_count": page_count,
                "status": "success",
            }
        except Exception as e:
            return {
                "text": "",
                "page_count": 0,
                "status": "failed",
                "error": str(e),
            }

    def extract_text(self, data: bytes, mime_type: str, filename: str = "") -> str:
        """
        Best-effort text for grounding the assistant.

        PDFs go through PyMuPDF, text-like types are decoded as UTF-8, and
        anything else yields an empty string. Never raises.
        """
        if mime_type == "application/pdf" or filename.lower().endswith(".pdf"):
            result = self.extract_pdf_text(data)
            if result["status"] == "failed":
                logger.warning("PDF text extraction failed for %s: %s", filename, result.get("error"))
            return result["text"]

        if mime_type.startswith("text/") or mime_type in _TEXT_MIME_TYPES:
            return _ILLEGAL_CHARS.sub("", data.decode("utf-8", errors="replace"))

        logger.info("No text extractor for %s (%s)", filename, mime_type)
        return ""


# Singleton instance
document_parser = DocumentParser()
