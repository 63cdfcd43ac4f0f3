"""Narratable text extraction and speech-oriented cleanup."""

from .extractor import (
    UNEXTRACTABLE_PLACEHOLDER,
    ExtractedText,
    TextExtractor,
    TextOrigin,
)
from .text_preprocessor import clean_text

__all__ = [
    "UNEXTRACTABLE_PLACEHOLDER",
    "ExtractedText",
    "TextExtractor",
    "TextOrigin",
    "clean_text",
]
