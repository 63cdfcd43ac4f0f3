"""
Page access for PDF documents.
Lazy text and annotation extraction only.
"""

from .page_model import PageModel

__all__ = [
    "PageModel",
]
