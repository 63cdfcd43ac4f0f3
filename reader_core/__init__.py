"""
Document backend for the PageVoice reader.
Page text and annotation access only; no rendering or selection.
"""

from .document import DocumentSource, MemoryDocumentSource, PDFDocumentSource
from .page import PageModel

__all__ = [
    "DocumentSource",
    "MemoryDocumentSource",
    "PDFDocumentSource",
    "PageModel",
]
