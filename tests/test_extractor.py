"""Tests for narratable text extraction and speech cleanup."""

from reader_core.document import MemoryDocumentSource
from readaloud.text.extractor import (
    UNEXTRACTABLE_PLACEHOLDER,
    TextExtractor,
    TextOrigin,
)
from readaloud.text.text_preprocessor import clean_text


# --- Extraction policy ---

def test_text_layer_first():
    doc = MemoryDocumentSource(["  Body text  "], annotations={0: ["Note"]})
    result = TextExtractor().describe(doc, 0)
    assert result.text == "Body text"
    assert result.origin is TextOrigin.TEXT_LAYER


def test_annotations_when_no_text_layer():
    doc = MemoryDocumentSource([None], annotations={0: [" First ", "", "second "]})
    result = TextExtractor().describe(doc, 0)
    assert result.text == "First second"
    assert result.origin is TextOrigin.ANNOTATIONS


def test_blank_text_layer_falls_back_to_annotations():
    doc = MemoryDocumentSource(["   \n "], annotations={0: ["Margin note"]})
    assert TextExtractor().extract(doc, 0) == "Margin note"


def test_nothing_to_read_is_empty_string():
    doc = MemoryDocumentSource([""])
    extractor = TextExtractor()
    result = extractor.describe(doc, 0)
    assert result.is_empty
    assert result.origin is TextOrigin.NONE
    assert extractor.extract(doc, 0) == ""


def test_placeholder_only_for_display():
    doc = MemoryDocumentSource(["", "Text"])
    extractor = TextExtractor()
    assert extractor.extract_for_display(doc, 0) == UNEXTRACTABLE_PLACEHOLDER
    assert extractor.extract_for_display(doc, 1) == "Text"
    assert extractor.extract(doc, 0) == ""


def test_custom_placeholder():
    doc = MemoryDocumentSource([""])
    assert TextExtractor(placeholder="(scanned)").extract_for_display(doc, 0) == "(scanned)"


def test_raw_mode_only_trims():
    doc = MemoryDocumentSource(["  line one\nline two  "])
    assert TextExtractor(clean=False).extract(doc, 0) == "line one\nline two"


def test_cleaning_is_applied():
    doc = MemoryDocumentSource(["com-\nputer   science [3]"])
    extractor = TextExtractor(strip_references=True)
    assert extractor.extract(doc, 0) == "computer science"


# --- clean_text ---

def test_clean_rejoins_hyphenated_line_breaks():
    assert clean_text("infor-\n  mation retrieval") == "information retrieval"


def test_clean_collapses_whitespace_and_newlines():
    assert clean_text("one\n\ntwo\t\tthree") == "one two three"


def test_clean_drops_invisible_characters():
    assert clean_text("soft\u00adhyphen zero\u200bwidth") == "softhyphen zerowidth"


def test_clean_references_kept_by_default():
    assert clean_text("as shown [1, 2]") == "as shown [1, 2]"
    assert clean_text("as shown [1, 2].", strip_references=True) == "as shown."


def test_clean_urls_become_speakable():
    assert clean_text("see https://www.example.org/docs/page") == "see link to example.org"


def test_clean_normalises_dashes_and_ellipses():
    assert clean_text("wait… then — go") == "wait... then, go"


def test_clean_empty_input():
    assert clean_text("") == ""
    assert clean_text(None) == ""
