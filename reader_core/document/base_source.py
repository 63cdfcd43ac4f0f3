"""
Abstract base class for paginated document sources.

The narration engine only ever reads a document through this
interface, so PDF files, plain-text files and test fixtures are
interchangeable.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class DocumentSource(ABC):
    """
    Read-only view of a paginated document.

    Pages are addressed by a zero-based index.  The page count is fixed
    once the document is opened.
    """

    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""

    @abstractmethod
    def page_text(self, page_index: int) -> Optional[str]:
        """
        Embedded text layer of a page.

        Returns:
            The raw page text, or ``None`` if the page has no text layer.
        """

    @abstractmethod
    def page_annotation_contents(self, page_index: int) -> List[str]:
        """Text contents of the annotations on a page, in page order."""

    def page_annotations_text(self, page_index: int) -> Optional[str]:
        """
        Annotation contents of a page joined with single spaces.

        Returns ``None`` when the page carries no textual annotations.
        """
        parts = [c.strip() for c in self.page_annotation_contents(page_index)]
        joined = " ".join(p for p in parts if p)
        return joined or None

    def _check_index(self, page_index: int) -> None:
        count = self.page_count()
        if page_index < 0 or page_index >= count:
            raise IndexError(
                f"Page index {page_index} out of range "
                f"(document has {count} pages)"
            )
