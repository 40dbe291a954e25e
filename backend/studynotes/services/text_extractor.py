"""
StudyNotes Backend — Text Extraction
======================================

What:  extract(bytes, mime_type) → plain text, for PDFs and images.
How:   PDFs are parsed in memory with PyMuPDF. Images are normalized
       (grayscale + autocontrast) with Pillow, written to a transient file in
       the work directory and passed to Tesseract through pytesseract.
       Both run in a worker thread bounded by `timeout` seconds.

Guarantees:
    - The transient OCR file is removed whether recognition succeeds or fails
    - Any failure (corrupt file, OCR engine error, timeout) → ExtractionError
    - A successful extraction with no text → NO_TEXT_PLACEHOLDER
"""

import asyncio
import io
import logging
import os
import re
import tempfile
import time
from pathlib import Path

import pymupdf
import pytesseract
from PIL import Image, ImageOps

from studynotes.exceptions import ExtractionError, UnsupportedTypeError

logger = logging.getLogger(__name__)

NO_TEXT_PLACEHOLDER = "[No text extracted]"

# Control characters that Postgres TEXT cannot store (NUL, etc.)
_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


class TextExtractor:
    """PDF parsing and image OCR; stateless apart from its work directory."""

    def __init__(self, work_dir: str, timeout: float = 60.0):
        self.work_dir = Path(work_dir).resolve()
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout

    async def extract(self, content: bytes, mime_type: str) -> str:
        """
        Extract text from an uploaded file.

        Args:
            content:   Raw file bytes
            mime_type: Declared type; application/pdf or image/*

        Returns:
            Extracted text, or NO_TEXT_PLACEHOLDER when nothing was found.

        Raises:
            UnsupportedTypeError: Any other MIME type
            ExtractionError:      Parsing/OCR failed or exceeded the timeout
        """
        if mime_type == "application/pdf":
            worker, kind = self._extract_pdf, "pdf"
        elif mime_type and mime_type.startswith("image/"):
            worker, kind = self._extract_image, "image"
        else:
            raise UnsupportedTypeError(mime_type)

        start_time = time.time()
        try:
            text = await asyncio.wait_for(asyncio.to_thread(worker, content), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("%s extraction timed out after %.0fs (%d bytes)", kind, self.timeout, len(content))
            raise ExtractionError(
                message="Text extraction took too long. Please try a smaller file.",
                context={"kind": kind, "timeout": self.timeout},
            )
        except Exception as e:
            logger.error("%s extraction failed: %s", kind, str(e), exc_info=True)
            raise ExtractionError(context={"kind": kind, "error_type": type(e).__name__})

        text = _ILLEGAL_CHARS.sub("", text).strip()
        logger.info(
            "%s extraction completed in %.0fms, %d chars",
            kind, (time.time() - start_time) * 1000, len(text),
        )
        return text or NO_TEXT_PLACEHOLDER

    @staticmethod
    def _extract_pdf(content: bytes) -> str:
        with pymupdf.open(stream=content, filetype="pdf") as doc:
            return "\n\n".join(page.get_text() for page in doc)

    def _extract_image(self, content: bytes) -> str:
        with Image.open(io.BytesIO(content)) as img:
            normalized = ImageOps.autocontrast(ImageOps.grayscale(img))

        fd, temp_path = tempfile.mkstemp(suffix=".png", prefix="ocr-", dir=self.work_dir)
        try:
            with os.fdopen(fd, "wb") as f:
                normalized.save(f, format="PNG")
            return pytesseract.image_to_string(temp_path)
        finally:
            try:
                os.remove(temp_path)
            except FileNotFoundError:
                pass
