"""PDF text extraction and preview service using PyMuPDF."""

import re

import pymupdf  # PyMuPDF

# Control characters PostgreSQL text columns reject
_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


class PDFProcessor:
    """Service for extracting text from PDF files and cutting previews."""

    @staticmethod
    async def extract_text(pdf_bytes: bytes) -> dict:
        """
        Pull the plain text out of every page of a note's PDF.

        Pages are separated by a blank line. Never raises: a document PyMuPDF
        cannot open comes back as {"status": "failed", "text": "", "error": ...},
        otherwise {"status": "success", "text": ..., "page_count": n}.
        """
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
                page_texts = [page.get_text() for page in doc]
                page_count = len(doc)

            full_text = _ILLEGAL_CHARS.sub("", "\n\n".join(page_texts))

            return {
                "text": full_text,
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

    @staticmethod
    async def validate_pdf(pdf_bytes: bytes) -> bool:
        """
        Validate that the bytes represent a valid PDF file.

        Args:
            pdf_bytes: Raw bytes to validate

        Returns:
            True if valid PDF, False otherwise
        """
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
                return len(doc) > 0
        except Exception:
            return False

    @staticmethod
    async def preview(pdf_bytes: bytes, max_pages: int) -> bytes:
        """
        Copy the first `max_pages` pages into a new, minimal document.

        Shorter documents are copied whole. Parsing errors propagate.
        """
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as source:
            keep = min(max_pages, len(source))
            with pymupdf.open() as preview_doc:
                if keep > 0:
                    preview_doc.insert_pdf(source, from_page=0, to_page=keep - 1)
                return preview_doc.tobytes(garbage=3, deflate=True)


# Singleton instance
pdf_processor = PDFProcessor()
