"""
Narratable text extraction with a fallback strategy.

Policy, in priority order:

1. the page's embedded text layer, if non-empty after trimming;
2. the page's annotation contents, space-separated;
3. nothing.

For narration "nothing" is the empty string, which the engine treats
as a signal to skip the page.  For display it is a human-readable
placeholder.  The placeholder is never spoken.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from reader_core.document.base_source import DocumentSource

from .text_preprocessor import clean_text

logger = logging.getLogger(__name__)

UNEXTRACTABLE_PLACEHOLDER = (
    "The text on this page cannot be extracted automatically. "
    "It may be a scanned page."
)


class TextOrigin(Enum):
    TEXT_LAYER = "text_layer"
    ANNOTATIONS = "annotations"
    NONE = "none"


@dataclass(frozen=True)
class ExtractedText:
    text: str
    origin: TextOrigin

    @property
    def is_empty(self) -> bool:
        return not self.text


class TextExtractor:
    """
    Produces the text to narrate for a page.

    Args:
        clean:            Run the speech preprocessor over extracted text.
        strip_references: Remove ``[N]``-style citation markers when cleaning.
        placeholder:      Text shown for pages with nothing to extract.
    """

    def __init__(
        self,
        clean: bool = True,
        strip_references: bool = False,
        placeholder: str = UNEXTRACTABLE_PLACEHOLDER,
    ):
        self.clean = clean
        self.strip_references = strip_references
        self.placeholder = placeholder

    def describe(self, source: DocumentSource, page_index: int) -> ExtractedText:
        """Extract text and report which layer it came from."""
        text = self._prepare(source.page_text(page_index))
        if text:
            return ExtractedText(text, TextOrigin.TEXT_LAYER)

        text = self._prepare(source.page_annotations_text(page_index))
        if text:
            logger.debug("Page %d: using annotation text", page_index)
            return ExtractedText(text, TextOrigin.ANNOTATIONS)

        return ExtractedText("", TextOrigin.NONE)

    def extract(self, source: DocumentSource, page_index: int) -> str:
        """Narratable text for a page; empty when there is nothing to read."""
        return self.describe(source, page_index).text

    def extract_for_display(self, source: DocumentSource, page_index: int) -> str:
        """Like :meth:`extract`, but returns the placeholder instead of ``""``."""
        return self.extract(source, page_index) or self.placeholder

    def _prepare(self, raw) -> str:
        if not raw:
            return ""
        if self.clean:
            return clean_text(raw, strip_references=self.strip_references)
        return raw.strip()
