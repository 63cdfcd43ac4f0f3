"""
Page model for the reader.
No Qt, no rendering, no links.
Provides lazily extracted page text and annotation contents only.
"""

import logging
from typing import List, Optional

import fitz

logger = logging.getLogger(__name__)


class PageModel:
    """
    Lightweight page model providing narratable text access.

    Uses lazy loading for the page and its text so that opening a large
    document does not extract every page up front.
    """

    def __init__(self, doc: fitz.Document, page_index: int):
        self._doc = doc
        self.page_index = page_index
        self._page: Optional[fitz.Page] = None

        # Lazy-loaded text
        self._text: Optional[str] = None
        self._annotation_contents: Optional[List[str]] = None

    @property
    def page(self) -> fitz.Page:
        """Get the underlying fitz page, loading if necessary."""
        if self._page is None:
            self._page = self._doc.load_page(self.page_index)
        return self._page

    @property
    def text(self) -> str:
        """Embedded text layer of the page (empty for image-only pages)."""
        if self._text is None:
            try:
                self._text = self.page.get_text("text") or ""
            except Exception as e:
                logger.warning(
                    "Failed to extract text for page %d: %s", self.page_index, e
                )
                self._text = ""
        return self._text

    @property
    def annotation_contents(self) -> List[str]:
        """Non-empty ``content`` entries of the page's annotations."""
        if self._annotation_contents is None:
            contents = []
            try:
                for annot in self.page.annots():
                    content = (annot.info or {}).get("content", "")
                    if content and content.strip():
                        contents.append(content)
            except Exception as e:
                logger.warning(
                    "Failed to read annotations for page %d: %s", self.page_index, e
                )
            self._annotation_contents = contents
        return self._annotation_contents

    @property
    def has_text(self) -> bool:
        """Check if page has an extractable text layer."""
        return bool(self.text.strip())

    def unload(self):
        """Unload page data to free memory."""
        self._text = None
        self._annotation_contents = None
        self._page = None

    def __repr__(self) -> str:
        return f"PageModel(page={self.page_index}, loaded={self._page is not None})"
