"""
PDF Processing Service
Handles PDF text extraction using PyMuPDF
"""

import fitz  # PyMuPDF
import logging
import re
from typing import Dict, Optional

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}


class PDFExtractionError(Exception):
    """The uploaded bytes could not be read as a PDF."""


class PDFProcessor:
    """Service for extracting text from uploaded PDF files"""

    def is_pdf_upload(self, filename: Optional[str], content_type: Optional[str]) -> bool:
        """Accept by declared content type, or by extension when the browser sent none"""
        if content_type and content_type.lower() in PDF_CONTENT_TYPES:
            return True
        if content_type and content_type.lower() != "application/octet-stream":
            return False
        return bool(filename) and filename.lower().endswith(".pdf")

    def extract_text(self, pdf_bytes: bytes, filename: Optional[str] = None) -> Dict:
        """
        Extract text content from PDF bytes

        Args:
            pdf_bytes: Raw PDF file content
            filename: Original file name, used as the title when the PDF has none

        Returns:
            Dictionary with text, extractedText, pageCount, wordCount and info
        """
        try:
            pdf_document = fitz.open(stream=pdf_bytes, filetype="pdf")
        except (RuntimeError, ValueError) as e:  # FileDataError is a RuntimeError
            logger.error(f"❌ Failed to open PDF: {e}")
            raise PDFExtractionError(f"PDF text extraction failed: {e}")

        try:
            metadata = pdf_document.metadata or {}
            page_texts = []
            for page in pdf_document:
                cleaned = self._clean_text(page.get_text())
                if cleaned:
                    page_texts.append(cleaned)
            page_count = pdf_document.page_count
        finally:
            pdf_document.close()

        text = "\n\n".join(page_texts)
        logger.info(f"✅ PDF processed: {page_count} pages, {len(text.split())} words")

        return {
            "text": text,
            "extractedText": text,
            "pageCount": page_count,
            "wordCount": len(text.split()),
            "info": {
                "Title": metadata.get("title") or filename or "",
                "Author": metadata.get("author", ""),
                "Subject": metadata.get("subject", ""),
                "Creator": metadata.get("creator", ""),
            },
        }

    def _clean_text(self, text: str) -> str:
        """Clean and normalize extracted text"""
        if not text:
            return ""

        # Re-join words hyphenated across line breaks
        text = re.sub(r'(\w+)-\s*\n\s*(\w+)', r'\1\2', text)

        # Drop bare page numbers
        text = re.sub(r'^\s*(Page\s+)?\d+\s*$', '', text, flags=re.MULTILINE | re.IGNORECASE)

        text = re.sub(r'[ \t]+', ' ', text)
        text = re.sub(r'\n\s*\n\s*\n+', '\n\n', text)

        text = text.replace('“', '"').replace('”', '"')
        text = text.replace('‘', "'").replace('’', "'")

        return text.strip()


pdf_processor = PDFProcessor()
