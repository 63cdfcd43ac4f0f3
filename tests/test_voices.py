"""Tests for voice catalogs and language-preference selection."""

import pytest

from conftest import FakeTTSEngine
from readaloud.errors import UnknownVoiceError
from readaloud.tts.voices import (
    DEFAULT_LANGUAGE_PREFERENCES,
    EngineVoiceCatalog,
    StaticVoiceCatalog,
    Voice,
    VoiceCatalog,
    VoiceSelector,
    select_voice,
)


def _voice(vid, tag):
    return Voice(id=vid, display_name=f"Voice {vid}", language_tag=tag)


class _MutableCatalog(VoiceCatalog):
    def __init__(self, voices):
        self.voices = list(voices)

    def list(self):
        return list(self.voices)


class _BrokenCatalog(VoiceCatalog):
    def list(self):
        raise OSError("voice service unavailable")


# --- select_voice ---

def test_preference_order_wins(voices):
    """en-US / ru-RU catalog with bg, ru, en preferences picks ru-RU."""
    assert select_voice(voices, ["bg", "ru", "en"]).id == "2"


def test_first_preference_matching():
    catalog = [_voice("a", "pl-PL"), _voice("b", "bg-BG"), _voice("c", "bg-BG")]
    assert select_voice(catalog, ["bg", "pl"]).id == "b"


def test_fallback_language():
    catalog = [_voice("de", "de-DE"), _voice("en", "en-GB")]
    assert select_voice(catalog, ["bg", "ru"]).id == "en"


def test_fallback_to_first_voice():
    catalog = [_voice("de", "de-DE"), _voice("fr", "fr-FR")]
    assert select_voice(catalog, ["bg"]).id == "de"


def test_empty_catalog():
    assert select_voice([], ["bg", "en"]) is None


def test_matching_is_case_and_separator_insensitive():
    catalog = [_voice("x", "RU_ru")]
    assert select_voice(catalog, ["ru-RU"]).id == "x"
    assert _voice("y", "en-US").matches_language("EN")


def test_selection_is_deterministic(voices):
    picks = {select_voice(voices, DEFAULT_LANGUAGE_PREFERENCES).id for _ in range(10)}
    assert picks == {"2"}


# --- VoiceSelector ---

def test_selector_automatic_choice(voices):
    selector = VoiceSelector(StaticVoiceCatalog(voices), ["bg", "ru", "en"])
    assert selector.active_voice.id == "2"
    assert selector.manual_choice is None
    assert selector.select(["en"]).id == "1"


def test_manual_choice_wins(voices):
    selector = VoiceSelector(StaticVoiceCatalog(voices), ["ru"])
    selector.choose("1")
    assert selector.active_voice.id == "1"
    selector.choose(None)
    assert selector.active_voice.id == "2"


def test_choose_unknown_voice(voices):
    selector = VoiceSelector(StaticVoiceCatalog(voices))
    with pytest.raises(UnknownVoiceError):
        selector.choose("nope")


def test_refresh_keeps_manual_choice_if_present(voices):
    catalog = _MutableCatalog(voices)
    selector = VoiceSelector(catalog, ["ru"])
    selector.choose("1")

    catalog.voices = [_voice("3", "bg-BG"), voices[0]]
    assert selector.refresh().id == "1"


def test_refresh_drops_missing_manual_choice(voices):
    catalog = _MutableCatalog(voices)
    selector = VoiceSelector(catalog, ["bg", "ru"])
    selector.choose("1")

    catalog.voices = [_voice("3", "bg-BG"), voices[1]]
    assert selector.refresh().id == "3"
    assert selector.manual_choice is None


def test_broken_catalog_means_no_voice():
    selector = VoiceSelector(_BrokenCatalog())
    assert selector.voices == []
    assert selector.active_voice is None


def test_set_preferences(voices):
    selector = VoiceSelector(StaticVoiceCatalog(voices), ["ru"])
    assert selector.set_preferences(["en"]).id == "1"


def test_engine_catalog_lists_engine_voices(voices):
    catalog = EngineVoiceCatalog(FakeTTSEngine(voices=voices))
    assert [v.id for v in catalog.list()] == ["1", "2"]
