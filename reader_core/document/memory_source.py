"""In-memory and plain-text document sources."""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .base_source import DocumentSource

# Plain-text files use form feeds as page breaks (as written by pdftotext)
PAGE_BREAK = "\f"


class MemoryDocumentSource(DocumentSource):
    """
    Document whose pages are held as strings.

    Usage::

        doc = MemoryDocumentSource(["Hello", "", "World"])
        doc.page_text(2)  # "World"
    """

    def __init__(
        self,
        pages: Sequence[Optional[str]],
        annotations: Optional[Dict[int, List[str]]] = None,
        name: str = "<memory>",
    ):
        self._pages = list(pages)
        self._annotations = {k: list(v) for k, v in (annotations or {}).items()}
        self.name = name

    @classmethod
    def from_text_file(cls, path: Union[str, Path], encoding: str = "utf-8"):
        """Load a plain-text file, splitting pages on form-feed characters."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Text file not found: {path}")
        text = path.read_text(encoding=encoding)
        pages = text.split(PAGE_BREAK)
        # A trailing form feed does not open a new page
        if len(pages) > 1 and not pages[-1].strip():
            pages.pop()
        return cls(pages, name=str(path))

    def page_count(self) -> int:
        return len(self._pages)

    def page_text(self, page_index: int) -> Optional[str]:
        self._check_index(page_index)
        return self._pages[page_index]

    def page_annotation_contents(self, page_index: int) -> List[str]:
        self._check_index(page_index)
        return list(self._annotations.get(page_index, []))

    def __repr__(self) -> str:
        return f"MemoryDocumentSource('{self.name}', pages={len(self._pages)})"
