"""
File Upload Utility - Validate CV uploads and extract their text.

Supported formats:
- PDF (.pdf) using PyPDF2
- Word (.docx) using python-docx
- Plain Text (.txt)

Max file size comes from settings (max_upload_mb).
"""

import io
from dataclasses import dataclass
from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError
from docx import Document

from inf_platform.core.config import get_settings

ALLOWED_EXTENSIONS = {'.pdf', '.docx', '.txt'}

CONTENT_TYPES = {
    '.pdf': 'application/pdf',
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    '.txt': 'text/plain',
}


@dataclass
class ExtractedFile:
    filename: str
    extension: str
    content: bytes
    text: str

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES[self.extension]


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def max_file_size_bytes() -> int:
    return get_settings().max_upload_mb * 1024 * 1024


async def read_upload(file: UploadFile) -> ExtractedFile:
    """
    Read an uploaded CV and extract its text.

    Raises:
        HTTPException on validation/extraction errors
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: PDF, DOCX, TXT"
        )

    content = await file.read()

    if len(content) > max_file_size_bytes():
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {get_settings().max_upload_mb}MB"
        )

    text = extract_text(content, ext)

    if not text.strip():
        raise HTTPException(
            status_code=400,
            detail="Could not extract text from file. File may be empty or corrupted."
        )

    return ExtractedFile(filename=file.filename, extension=ext, content=content, text=text)


def extract_text(content: bytes, ext: str) -> str:
    if ext == '.pdf':
        return extract_from_pdf(content)
    if ext == '.docx':
        return extract_from_docx(content)
    return extract_from_txt(content)


def extract_from_pdf(content: bytes) -> str:
    """Extract text from PDF bytes."""
    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        return '\n'.join(text_parts)
    except PdfReadError as e:
        raise HTTPException(status_code=400, detail=f"Error reading PDF: {str(e)}")


def extract_from_docx(content: bytes) -> str:
    """Extract text from DOCX bytes."""
    try:
        doc = Document(io.BytesIO(content))
    except Exception as e:
        # python-docx raises zipfile/KeyError/ValueError variants for bad input
        raise HTTPException(status_code=400, detail=f"Error reading DOCX: {str(e)}")

    text_parts = []

    for para in doc.paragraphs:
        if para.text.strip():
            text_parts.append(para.text)

    for table in doc.tables:
        for row in table.rows:
            row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if row_text:
                text_parts.append(' | '.join(row_text))

    return '\n'.join(text_parts)


def extract_from_txt(content: bytes) -> str:
    """Extract text from TXT bytes."""
    for encoding in ['utf-8', 'latin-1']:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise HTTPException(status_code=400, detail="Could not decode text file")
