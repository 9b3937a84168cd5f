"""
Client Module

Low-level accessors with no business logic:
- Profile Store: persisted goals, paths, course units, assessments, cache entries
- PDF Client: resume text extraction using pdfplumber
"""

from .profile_store import (
    ProfileStore,
    new_id,
)

from .pdf_client import (
    extract_text_from_pdf,
    clean_extracted_text,
    validate_pdf_file,
    extract_resume_text,
)

__all__ = [
    "ProfileStore",
    "new_id",
    "extract_text_from_pdf",
    "clean_extracted_text",
    "validate_pdf_file",
    "extract_resume_text",
]
