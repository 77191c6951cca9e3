"""
compositor/documents.py

Paginated worksheet decoding. pdfplumber backs the default decoder.
"""

from __future__ import annotations

import logging
from typing import Protocol

import pdfplumber
from pdfminer.psparser import PSException
from pdfplumber.utils.exceptions import PdfminerException
from PIL import Image

from compositor.errors import DocumentDecodeError
from compositor.resources import TemporaryAsset

logger = logging.getLogger(__name__)

# PDF user space is 72 units per inch; render scale 1.0 is 72 DPI.
POINTS_PER_INCH = 72


class PaginatedDocument(Protocol):
    @property
    def page_count(self) -> int:
        ...

    def render_page(self, page_number: int, *, scale: float) -> Image.Image:
        """Render a 1-based page to an RGBA image."""
        ...

    def close(self) -> None:
        ...


class DocumentDecoder(Protocol):
    def open(self, asset: TemporaryAsset) -> PaginatedDocument:
        ...


class PlumberDocument:
    def __init__(self, pdf: pdfplumber.PDF, *, name: str) -> None:
        self._pdf = pdf
        self._name = name
        self._page_count = len(pdf.pages)
        self._closed = False

    @property
    def page_count(self) -> int:
        return self._page_count

    def render_page(self, page_number: int, *, scale: float) -> Image.Image:
        if self._closed:
            raise DocumentDecodeError(f"Document {self._name!r} is closed.")
        if not 1 <= page_number <= self._page_count:
            raise DocumentDecodeError(
                f"Page {page_number} is outside 1..{self._page_count} for {self._name!r}."
            )

        page = self._pdf.pages[page_number - 1]
        try:
            rendered = page.to_image(resolution=max(1, round(POINTS_PER_INCH * scale)))
            return rendered.original.convert("RGBA")
        except Exception as exc:  # noqa: BLE001
            raise DocumentDecodeError(f"Failed to render page {page_number}: {exc}") from exc
        finally:
            page.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pdf.close()


class PlumberDocumentDecoder:
    def open(self, asset: TemporaryAsset) -> PlumberDocument:
        try:
            pdf = pdfplumber.open(asset.path)
        except (PdfminerException, PSException, OSError, ValueError) as exc:
            raise DocumentDecodeError(f"Failed to open worksheet {asset.name!r}: {exc}") from exc

        try:
            document = PlumberDocument(pdf, name=asset.name)
        except (PdfminerException, PSException, ValueError) as exc:
            pdf.close()
            raise DocumentDecodeError(f"Failed to read pages of {asset.name!r}: {exc}") from exc

        if document.page_count < 1:
            document.close()
            raise DocumentDecodeError(f"Worksheet {asset.name!r} has no pages.")
        logger.info("Worksheet opened name=%s pages=%s", asset.name, document.page_count)
        return document
