"""Rule-based urgency scoring over caller utterances.

Pure functions over a ``Lexicon``; no I/O and no clock.
"""

import re
from functools import lru_cache

from app.lexicon import DEFAULT_LEXICON, DISTRESS, EXPLICIT_EMERGENCY, Lexicon
from app.schemas.call import UrgencyTier, UtteranceClassification

TONE_HIGH_DISTRESS = "High distress - patient appears very upset or panicked"
TONE_PAIN = "Pain-related distress - patient experiencing discomfort"
TONE_CONCERNED = "Concerned but composed - patient seeking reassurance"
TONE_CALM = "Calm and composed - routine inquiry tone"

PAIN_LEVEL_EMERGENCY = 7

_SUMMARY_PREFIX = {
    UrgencyTier.emergency: "EMERGENCY DETECTED: Patient reporting",
    UrgencyTier.uncertain: "UNCLEAR URGENCY: Patient mentioned",
    UrgencyTier.non_emergency: "NON-EMERGENCY: Patient requesting",
}


def normalize_text(text: str) -> str:
    """Lowercase and fold typographic apostrophes to ASCII."""
    return text.replace("’", "'").replace("‘", "'").lower().strip()


# Anchored at the start of a word only, so "urgently" and "toothaches" match.
@lru_cache(maxsize=1024)
def _phrase_regex(phrase: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(phrase.lower())}")


@lru_cache(maxsize=8)
def _compiled(lexicon: Lexicon) -> tuple[tuple[str, tuple[tuple[str, re.Pattern[str]], ...]], ...]:
    return tuple(
        (cat.name, tuple((p, _phrase_regex(p)) for p in dict.fromkeys(cat.phrases)))
        for cat in lexicon.categories
    )


def _find_hits(text: str, lexicon: Lexicon) -> dict[str, list[str]]:
    """Return matched phrases per category, dropping nested fragments.

    An occurrence strictly inside a longer matched occurrence does not
    count; a phrase counts once if any of its occurrences survives.
    """
    occurrences: list[tuple[str, str, int, int]] = []
    for cat_name, phrases in _compiled(lexicon):
        for phrase, regex in phrases:
            for m in regex.finditer(text):
                occurrences.append((cat_name, phrase, m.start(), m.end()))

    spans = {(start, end) for _, _, start, end in occurrences}

    def shadowed(start: int, end: int) -> bool:
        return any(
            s <= start and end <= e and (e - s) > (end - start)
            for s, e in spans
        )

    hits: dict[str, list[str]] = {}
    for cat_name, phrase, start, end in occurrences:
        if shadowed(start, end):
            continue
        matched = hits.setdefault(cat_name, [])
        if phrase not in matched:
            matched.append(phrase)
    return hits


def _contains_any(text: str, words: tuple[str, ...]) -> bool:
    return any(_phrase_regex(w).search(text) for w in words)


def detect_emotional_tone(text: object, lexicon: Lexicon = DEFAULT_LEXICON) -> str:
    if not isinstance(text, str) or not text.strip():
        return TONE_CALM
    lowered = normalize_text(text)
    distress = lexicon.category(DISTRESS)
    if distress and _contains_any(lowered, distress.phrases):
        return TONE_HIGH_DISTRESS
    # "hurts", "painful" still count as pain words
    if any(w in lowered for w in lexicon.tone_pain_words):
        return TONE_PAIN
    if any(w in lowered for w in lexicon.tone_concern_words):
        return TONE_CONCERNED
    return TONE_CALM


def classify(utterance: object, lexicon: Lexicon = DEFAULT_LEXICON) -> UtteranceClassification:
    """Score an utterance against the lexicon and pick an urgency tier.

    Tiers, checked in order:
      1. any explicit-emergency phrase, or score >= emergency_threshold
      2. score >= uncertain_threshold, or nothing matched at all
      3. otherwise non-emergency

    Empty or non-string input is ``non_emergency`` with confidence 0.
    """
    if not isinstance(utterance, str) or not utterance.strip():
        return UtteranceClassification(
            type=UrgencyTier.non_emergency,
            confidence=0,
            emotional_tone=TONE_CALM,
        )

    text = normalize_text(utterance)
    hits = _find_hits(text, lexicon)

    score = 0
    reasons: list[str] = []
    for cat in lexicon.categories:
        matched = hits.get(cat.name)
        if not matched:
            continue
        score += len(matched) * cat.weight
        reasons.append(cat.reason)

    if hits.get(EXPLICIT_EMERGENCY) or score >= lexicon.emergency_threshold:
        tier = UrgencyTier.emergency
    elif score >= lexicon.uncertain_threshold or not reasons:
        # Nothing recognizable is treated as ambiguous, not as safe.
        tier = UrgencyTier.uncertain
    else:
        tier = UrgencyTier.non_emergency

    return UtteranceClassification(
        type=tier,
        confidence=max(0, min(100, score)),
        reasons=reasons,
        emotional_tone=detect_emotional_tone(utterance, lexicon),
        keyword_hits={cat.name: hits[cat.name] for cat in lexicon.categories if cat.name in hits},
    )


def summarize_classification(utterance: str, classification: UtteranceClassification) -> str:
    excerpt = utterance[:100] + ("..." if len(utterance) > 100 else "")
    basis = ", ".join(classification.reasons) or "no recognizable keywords"
    return f"{_SUMMARY_PREFIX[classification.type]} {excerpt}. Classification based on: {basis}."


def tier_from_pain_level(pain_level: object) -> UrgencyTier:
    """Map a 0-10 pain score to a tier. Missing or non-numeric is non-emergency."""
    if pain_level is None or isinstance(pain_level, bool):
        return UrgencyTier.non_emergency
    try:
        value = float(str(pain_level).strip())
    except ValueError:
        return UrgencyTier.non_emergency
    if value != value:  # NaN
        return UrgencyTier.non_emergency
    return UrgencyTier.emergency if value >= PAIN_LEVEL_EMERGENCY else UrgencyTier.non_emergency
