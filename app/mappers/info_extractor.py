import re

from app.lexicon import DEFAULT_LEXICON, Lexicon
from app.schemas.call import ExtractedInfo

_TRAILING_PUNCT = " \t.,!?;:"


def _clean(text: str) -> str:
    return text.replace("’", "'").replace("‘", "'").strip()


def extract_name(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> str | None:
    """Pull a caller name out of free text. Only cue phrases count.

    "my name is John Smith and ..." → "John Smith"
    "this is an emergency" → None (filler word right after the cue)
    "Billing." → None
    """
    cleaned = _clean(text)
    stopwords = set(lexicon.patterns.name_stopwords)

    for pattern in lexicon.patterns.name_patterns:
        match = re.search(pattern, cleaned, re.IGNORECASE)
        if not match or not match.group(1):
            continue
        words = match.group(1).split()
        if not words or words[0].lower() in stopwords:
            continue
        while words and words[-1].lower() in stopwords:
            words.pop()
        if words:
            return " ".join(w[:1].upper() + w[1:] for w in words)
    return None


def extract_bare_name(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> str | None:
    """Accept an answer that is just one to three capitalized words.

    Only used when the caller was asked for their name.
    """
    stopwords = set(lexicon.patterns.name_stopwords)
    bare = _clean(text).strip(_TRAILING_PUNCT)
    if re.match(lexicon.patterns.bare_name_pattern, bare):
        words = bare.split()
        if words[0].lower() not in stopwords:
            return bare
    return None


def normalize_phone(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> str | None:
    """Return the first North-American number in text as ten digits."""
    match = re.search(lexicon.patterns.phone_pattern, _clean(text))
    if not match:
        return None
    return "".join(g for g in match.groups() if g)


def extract_phone(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> str | None:
    return normalize_phone(text, lexicon)


def extract_callback_time(text: str, lexicon: Lexicon = DEFAULT_LEXICON) -> str | None:
    cleaned = _clean(text)
    for pattern in lexicon.patterns.callback_patterns:
        match = re.search(pattern, cleaned, re.IGNORECASE)
        if not match:
            continue
        value = (match.group(1) or "").strip(_TRAILING_PUNCT)
        if value:
            return value
    return None


def extract(utterance: object, lexicon: Lexicon = DEFAULT_LEXICON) -> ExtractedInfo:
    if not isinstance(utterance, str):
        return ExtractedInfo()
    return ExtractedInfo(
        name=extract_name(utterance, lexicon),
        phone=extract_phone(utterance, lexicon),
        description=utterance,
        preferred_callback_time=extract_callback_time(utterance, lexicon),
    )
