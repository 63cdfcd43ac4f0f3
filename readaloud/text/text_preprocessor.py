"""
Text preprocessing for TTS consumption.

Cleans raw PDF page text so it reads naturally when spoken: rejoins
words hyphenated across lines, collapses layout whitespace, and
replaces artefacts a synthesizer would stumble over.
"""

import re

# -----------------------------------------------------------------
# Regex patterns
# -----------------------------------------------------------------

# Hyphenation at line break: "com-\nputer" → "computer"
_RE_HYPHEN_LINEBREAK = re.compile(r"(\w)-\s*\n\s*(\w)")

# Reference markers: [1], [2,3], [1-3], [12, 15]
_RE_REFERENCE_MARKER = re.compile(r"\s*\[\d+(?:\s*[,\-–]\s*\d+)*\]")

# URLs
_RE_URL = re.compile(
    r"https?://[^\s)<>\]\"']+"
    r"|www\.[^\s)<>\]\"']+",
    re.IGNORECASE,
)

# Soft hyphens and zero-width characters left by PDF text layers
_RE_INVISIBLE = re.compile("[\u00ad\u200b\u200c\u200d\ufeff]")

# Multiple whitespace → single space
_RE_MULTI_WHITESPACE = re.compile(r"[ \t\r\f\v]+")

# Ellipsis normalisation
_RE_ELLIPSIS = re.compile(r"\.{2,}|…")

# Em/en dash normalisation
_RE_DASHES = re.compile(r"\s*[—–]\s*")


# -----------------------------------------------------------------
# Public API
# -----------------------------------------------------------------


def _url_to_speech(m: "re.Match") -> str:
    domain = re.sub(r"^(https?://)?(www\.)?", "", m.group(0), flags=re.IGNORECASE)
    return f"link to {domain.split('/')[0]}"


def clean_text(text: str, strip_references: bool = False) -> str:
    """
    Clean raw page text for TTS synthesis.

    Steps:
    1. Drop soft hyphens and zero-width characters
    2. Rejoin hyphenated line breaks
    3. Collapse newlines and runs of whitespace
    4. Optionally strip ``[N]`` reference markers
    5. Replace URLs with "link to <domain>"
    6. Normalise dashes and ellipses
    """
    if not text:
        return ""

    t = _RE_INVISIBLE.sub("", text)

    # PDF lines are not sentences
    t = _RE_HYPHEN_LINEBREAK.sub(r"\1\2", t)
    t = t.replace("\n", " ")
    t = _RE_MULTI_WHITESPACE.sub(" ", t)

    if strip_references:
        t = _RE_REFERENCE_MARKER.sub("", t)

    t = _RE_URL.sub(_url_to_speech, t)

    t = _RE_ELLIPSIS.sub("...", t)
    t = _RE_DASHES.sub(", ", t)

    return _RE_MULTI_WHITESPACE.sub(" ", t).strip()
