"""
Title name normalization.

Turns a raw folder / catalog title into the key used to decide whether two
sightings are the same title. Matching on the key is exact; there is no
fuzzy or distance matching here.
"""

import re
from functools import lru_cache

from .constants import REPACK_GROUP_TOKENS

_BRACKETED = re.compile(r"[\[\(\{\<][^\[\]\(\)\{\}\<\>]*[\]\)\}\>]")
_ORPHAN_BRACKETS = re.compile(r"[\[\]\(\)\{\}\<\>]")
_TRADEMARKS = re.compile(r"[™®©]")
_REPACK_TOKENS = re.compile(
    r"\b(" + "|".join(re.escape(t) for t in REPACK_GROUP_TOKENS) + r")\b",
    re.IGNORECASE,
)
_VERSION_TOKEN = re.compile(r"\s+v\d+(\.\d+)*[a-zA-Z0-9\-]*", re.IGNORECASE)
_TRAILING_PUNCT = re.compile(r"[\s\-:,.]+$")
_MULTI_SPACE = re.compile(r"\s{2,}")
# A hyphen not flanked by word characters on both sides, with its padding
_LOOSE_HYPHEN = re.compile(r"(?<!\w)-\s*|\s*-(?!\w)")
_ANY_HYPHEN = re.compile(r"\s*-\s*")
_LEADING_REPACK = re.compile(r"^repack[\s\-:]*", re.IGNORECASE)


def _hyphen_to_colon(text: str) -> str:
    # Folder names can't hold ':' so the first hyphen stands in for the
    # subtitle colon. A title that already has a colon is left alone.
    if ":" in text:
        return text
    match = _LOOSE_HYPHEN.search(text) or _ANY_HYPHEN.search(text)
    if not match:
        return text
    return text[:match.start()].rstrip() + ": " + text[match.end():].lstrip()


def normalize_title(raw) -> str:
    """
    Normalized display form of a raw title.

    Bracketed segments (nested ones included), trademark glyphs, repack
    group tags and version tokens are removed, trailing punctuation is
    stripped, spaces are collapsed and the first hyphen becomes ``": "``.
    Never raises; ``None`` or ``""`` give ``""``.

    >>> normalize_title("Cyberpunk 2077 [FitGirl Repack] v2.1")
    'Cyberpunk 2077'
    """
    if not raw:
        return ""
    if not isinstance(raw, str):
        raw = str(raw)
    return _normalize(raw)


@lru_cache(maxsize=4096)
def _normalize(raw: str) -> str:
    # Stripping can expose new matches (e.g. a version token behind a hyphen),
    # so run the pipeline to a fixed point.
    current = _normalize_once(raw)
    while True:
        again = _normalize_once(current)
        if again == current:
            return current
        current = again


def _strip_brackets(text: str) -> str:
    # Innermost pairs first until none are left
    while True:
        stripped = _BRACKETED.sub("", text)
        if stripped == text:
            return text
        text = stripped


def _normalize_once(raw: str) -> str:
    cleaned = _strip_brackets(raw)
    cleaned = _ORPHAN_BRACKETS.sub("", cleaned)
    cleaned = _TRADEMARKS.sub("", cleaned)
    cleaned = _REPACK_TOKENS.sub("", cleaned)
    cleaned = _VERSION_TOKEN.sub("", cleaned)
    cleaned = _TRAILING_PUNCT.sub("", cleaned)
    cleaned = _MULTI_SPACE.sub(" ", cleaned)
    cleaned = _hyphen_to_colon(cleaned)
    cleaned = _MULTI_SPACE.sub(" ", cleaned)
    return cleaned.strip()


def title_key(raw: str) -> str:
    """Lower-cased comparison key; two sightings are the same title iff keys are equal."""
    return normalize_title(raw).lower()


def strip_repack_tokens(raw: str) -> str:
    """
    Looser key used by the store lookup: also drops a leading "repack"
    word and any group tag the first pass left behind.
    """
    key = title_key(raw)
    key = _LEADING_REPACK.sub("", key).strip()
    key = _REPACK_TOKENS.sub("", key)
    return _MULTI_SPACE.sub(" ", key).strip()


def titles_match(a: str, b: str) -> bool:
    return title_key(a) == title_key(b)
