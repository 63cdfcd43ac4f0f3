"""Paginated document sources consumed by the narration engine."""

from .base_source import DocumentSource
from .memory_source import MemoryDocumentSource
from .pdf_source import PDFDocumentSource

__all__ = [
    "DocumentSource",
    "MemoryDocumentSource",
    "PDFDocumentSource",
]
