"""
PDF document source for the reader.
No Qt dependencies, no rendering.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import fitz  # PyMuPDF

from ..page.page_model import PageModel
from .base_source import DocumentSource

logger = logging.getLogger(__name__)


class PDFDocumentSource(DocumentSource):
    """
    Keeps a PDF open and serves page text and annotation contents.

    Page models are created on first access and cached, so text is
    extracted at most once per page.

    Usage::

        with PDFDocumentSource("book.pdf") as doc:
            print(doc.page_count(), doc.page_text(0))
    """

    def __init__(self, file_path: Union[str, Path]):
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"PDF not found: {path}")

        try:
            self.doc: Optional[fitz.Document] = fitz.open(str(path))
        except Exception as e:
            raise RuntimeError(f"Failed to open PDF '{path}': {e}") from e

        self.file_path = str(path)
        self.total_pages: int = self.doc.page_count
        self._pages: Dict[int, PageModel] = {}
        logger.debug("Opened %s (%d pages)", self.file_path, self.total_pages)

    # ------------------------------------------------------------------
    # DocumentSource
    # ------------------------------------------------------------------

    def page_count(self) -> int:
        return self.total_pages

    def page_text(self, page_index: int) -> Optional[str]:
        text = self.get_page(page_index).text
        return text or None

    def page_annotation_contents(self, page_index: int) -> List[str]:
        return list(self.get_page(page_index).annotation_contents)

    # ------------------------------------------------------------------
    # Page access
    # ------------------------------------------------------------------

    def get_page(self, page_index: int) -> PageModel:
        """
        Get the cached page model for *page_index*.

        Raises:
            IndexError: If the index is outside the document.
            RuntimeError: If the document has been closed.
        """
        if self.doc is None:
            raise RuntimeError(f"Document '{self.file_path}' is closed")
        self._check_index(page_index)

        page = self._pages.get(page_index)
        if page is None:
            page = PageModel(self.doc, page_index)
            self._pages[page_index] = page
        return page

    def unload_page(self, page_index: int) -> None:
        """Drop cached data for a page to free memory."""
        page = self._pages.pop(page_index, None)
        if page is not None:
            page.unload()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the PDF and clear all cached pages."""
        for page in self._pages.values():
            page.unload()
        self._pages.clear()

        if self.doc:
            self.doc.close()
            self.doc = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __repr__(self):
        return f"PDFDocumentSource('{self.file_path}', pages={self.total_pages})"
