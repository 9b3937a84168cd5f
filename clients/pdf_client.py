"""
PDF Client - Resume text extraction

Reads resume PDFs with pdfplumber so the assessment service can score a
resume uploaded as a file instead of pasted text.
"""

import re
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import pdfplumber

logger = logging.getLogger(__name__)

MIN_FILE_SIZE_BYTES = 100
MAX_FILE_SIZE_BYTES = 20 * 1024 * 1024
MIN_RESUME_CHARS = 50


# ============================================================================
# TEXT EXTRACTION
# ============================================================================

def extract_text_from_pdf(file_path: Union[str, Path]) -> str:
    """
    Extract the text of every page of a PDF.

    Pages are joined with blank lines. Pages without a text layer are skipped.

    Args:
        file_path: Path to the PDF file

    Returns:
        Extracted text ("" when no page has text)

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a .pdf or cannot be read as a PDF
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"PDF file not found: {file_path}")
    if file_path.suffix.lower() != ".pdf":
        raise ValueError(f"File is not a PDF: {file_path.suffix}")

    logger.info(f"📄 Extracting text from PDF: {file_path.name}")

    try:
        with pdfplumber.open(file_path) as pdf:
            page_texts = []
            for page_num, page in enumerate(pdf.pages, start=1):
                text = page.extract_text()
                if text:
                    page_texts.append(text)
                else:
                    logger.debug(f"Page {page_num} has no extractable text")
    except Exception as e:
        logger.error(f"❌ PDF extraction failed: {e}", exc_info=True)
        raise ValueError(f"Failed to read PDF {file_path.name}: {e}") from e

    full_text = "\n\n".join(page_texts)
    if not full_text.strip():
        logger.warning("⚠️  No text extracted from PDF (might be a scanned image)")
        return ""

    logger.info(f"✅ Extracted {len(full_text)} characters from PDF")
    return full_text


def clean_extracted_text(text: str) -> str:
    """Collapse blank-line runs and repeated spaces, drop bare page numbers."""
    if not text:
        return ""

    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"^\s*\d+\s*$", "", text, flags=re.MULTILINE)
    return text.strip()


# ============================================================================
# RESUME HELPERS
# ============================================================================

def validate_pdf_file(file_path: Union[str, Path]) -> Tuple[bool, Optional[str]]:
    """
    Check that a file looks like a readable resume PDF.

    Args:
        file_path: Path to the PDF file

    Returns:
        (True, None) if valid, otherwise (False, reason)
    """
    file_path = Path(file_path)

    if not file_path.exists():
        return False, f"File not found: {file_path}"
    if file_path.suffix.lower() != ".pdf":
        return False, f"File is not a PDF (extension: {file_path.suffix})"

    size = file_path.stat().st_size
    if size < MIN_FILE_SIZE_BYTES:
        return False, "PDF file is too small (might be corrupted)"
    if size > MAX_FILE_SIZE_BYTES:
        return False, "PDF file is too large (max 20MB)"

    return True, None


def extract_resume_text(file_path: Union[str, Path]) -> str:
    """
    Validate a resume PDF and return its cleaned text.

    Raises:
        ValueError: If the file is invalid or has too little text to assess
    """
    is_valid, error = validate_pdf_file(file_path)
    if not is_valid:
        raise ValueError(error)

    text = clean_extracted_text(extract_text_from_pdf(file_path))
    if len(text) < MIN_RESUME_CHARS:
        raise ValueError("Resume PDF contains too little text to assess (OCR may be required)")
    return text
