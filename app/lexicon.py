"""Versioned keyword lexicon, extraction patterns and voice profiles.

Everything the classifier, extractor and response builder treat as tunable
data lives here. ``DEFAULT_LEXICON`` ships with the code; a JSON file with the
same shape can replace it at startup (``LEXICON_PATH``).
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

EXPLICIT_EMERGENCY = "explicit_emergency"
DISTRESS = "distress"
NON_EMERGENCY = "non_emergency"


class KeywordCategory(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    weight: int
    reason: str
    phrases: tuple[str, ...]


class VoiceProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    stability: float
    style: float
    similarity_boost: float = 0.8


class VoiceProfiles(BaseModel):
    model_config = ConfigDict(frozen=True)

    emergency: VoiceProfile = VoiceProfile(stability=0.8, style=0.3, similarity_boost=0.9)
    uncertain: VoiceProfile = VoiceProfile(stability=0.6, style=0.2)
    non_emergency: VoiceProfile = VoiceProfile(stability=0.5, style=0.1)


class ExtractionPatterns(BaseModel):
    model_config = ConfigDict(frozen=True)

    name_patterns: tuple[str, ...]
    bare_name_pattern: str
    name_stopwords: tuple[str, ...]
    phone_pattern: str
    callback_patterns: tuple[str, ...]


class Lexicon(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str
    # Evaluation order is the order of this tuple.
    categories: tuple[KeywordCategory, ...]
    emergency_threshold: int = 40
    uncertain_threshold: int = 20
    tone_pain_words: tuple[str, ...] = ("pain", "hurt")
    tone_concern_words: tuple[str, ...] = ("worried", "concerned")
    patterns: ExtractionPatterns
    voices: VoiceProfiles = VoiceProfiles()

    def category(self, name: str) -> KeywordCategory | None:
        for cat in self.categories:
            if cat.name == name:
                return cat
        return None


_NAME = r"([a-z][a-z'\-]*(?:\s+[a-z][a-z'\-]*){0,2})"

DEFAULT_LEXICON = Lexicon(
    version="2024.1-dental",
    categories=(
        KeywordCategory(
            name=EXPLICIT_EMERGENCY,
            weight=50,
            reason="Explicit emergency declaration detected",
            phrases=(
                "emergency", "emergencies", "it's an emergency", "this is an emergency", "urgent",
                "urgent care", "right now", "immediately", "can't wait", "need help now",
                "emergency room", "dental emergency", "oral emergency", "urgent dental care",
                "emergency dental", "critical", "life threatening", "serious", "severe",
                "extreme", "need doctor now", "need dentist now", "can't wait until tomorrow",
                "emergency appointment", "urgent appointment", "same day appointment",
            ),
        ),
        KeywordCategory(
            name="severe_pain",
            weight=30,
            reason="Severe pain indicators detected",
            phrases=(
                "severe pain", "excruciating pain", "unbearable pain", "extreme pain",
                "worst pain", "pain scale 10", "can't sleep", "crying", "screaming",
                "sharp pain", "stabbing pain", "pulsating pain", "throbbing pain",
                "constant pain", "non-stop pain", "pain all night", "pain for days",
                "worst pain ever", "can't eat", "can't drink", "can't talk",
                "pain medication not working", "over the counter not helping",
                "toothache", "dental pain", "oral pain", "jaw pain", "facial pain",
            ),
        ),
        KeywordCategory(
            name="bleeding",
            weight=25,
            reason="Bleeding indicators detected",
            phrases=(
                "bleeding", "blood", "bleeding gums", "bleeding tooth", "heavy bleeding",
                "won't stop bleeding", "mouth bleeding", "gums bleeding", "bleeding mouth",
                "blood in mouth", "bleeding after extraction", "continuous bleeding",
                "profuse bleeding", "bleeding for hours", "blood when brushing",
                "blood when flossing", "gums bleeding easily", "bleeding socket",
                "post-operative bleeding", "surgical bleeding",
            ),
        ),
        KeywordCategory(
            name="swelling",
            weight=25,
            reason="Swelling indicators detected",
            phrases=(
                "swelling", "swollen", "face swollen", "cheek swollen", "jaw swollen",
                "eye swelling", "facial swelling", "can't open mouth", "mouth swollen",
                "gums swollen", "tooth area swollen", "cheek puffy", "face puffy",
                "jaw locked", "can't chew", "can't swallow", "difficulty breathing",
                "swollen lymph nodes", "swollen under jaw", "swollen around tooth",
                "facial inflammation", "oral swelling", "dental swelling",
            ),
        ),
        KeywordCategory(
            name="infection",
            weight=25,
            reason="Infection indicators detected",
            phrases=(
                "infection", "infected", "pus", "abscess", "fever", "hot to touch",
                "red and swollen", "throbbing", "infected tooth", "gum infection",
                "dental abscess", "tooth abscess", "gum abscess", "oral infection",
                "bad taste in mouth", "foul odor", "drainage", "root canal infection",
                "periodontal infection",
            ),
        ),
        KeywordCategory(
            name="trauma",
            weight=30,
            reason="Dental trauma detected",
            phrases=(
                "knocked out tooth", "tooth knocked out", "knocked out", "broken tooth",
                "cracked tooth", "tooth fell out", "accident", "hit in face",
                "sports injury", "car accident", "tooth knocked loose", "tooth displaced",
                "tooth chipped", "tooth fractured", "crown fell off", "filling fell out",
                "bridge broken", "dental work broken", "dental work fell out",
                "impact injury", "blow to face", "fall on face", "dental trauma",
                "oral injury", "mouth injury", "jaw injury", "facial injury",
            ),
        ),
        KeywordCategory(
            name="post_op",
            weight=20,
            reason="Post-operative complications detected",
            phrases=(
                "after surgery", "post surgery", "after extraction", "wisdom teeth",
                "dry socket", "stitches", "complications", "healing problems",
                "post-operative pain", "surgical site infection", "surgical complications",
                "extraction site", "surgical site", "sutures", "stitches loose",
                "stitches fell out", "bleeding after surgery", "pain after surgery",
                "swelling after surgery", "infection after surgery", "dry socket pain",
                "alveolar osteitis", "post-extraction complications", "surgical wound",
                "healing not normal", "delayed healing", "abnormal healing",
            ),
        ),
        KeywordCategory(
            name=DISTRESS,
            weight=15,
            reason="Emotional distress detected",
            phrases=(
                "crying", "scared", "terrified", "panic", "help me", "please help",
                "desperate", "worried sick", "can't take it", "emergency room",
                "sobbing", "hysterical", "freaking out", "losing my mind", "going crazy",
                "can't handle this", "breaking down", "overwhelmed", "distressed",
                "anxious", "nervous", "fearful", "afraid", "worried", "concerned",
                "stressed", "agitated", "frustrated", "urgent", "critical", "serious",
                "severe", "extreme", "worst ever", "never felt like this", "unbearable",
                "intolerable", "can't function", "can't work", "can't sleep", "can't eat",
                "need immediate help", "need help now", "can't wait", "emergency",
                "urgent care", "right now", "immediately", "asap",
            ),
        ),
        KeywordCategory(
            name=NON_EMERGENCY,
            weight=-10,
            reason="Non-emergency indicators detected",
            phrases=(
                "appointment", "schedule", "reschedule", "cancel", "change appointment",
                "billing", "insurance", "payment", "cost", "price", "quote",
                "cleaning", "check-up", "checkup", "routine", "mild discomfort",
                "slight pain", "question", "information", "hours", "location", "directions",
            ),
        ),
    ),
    patterns=ExtractionPatterns(
        name_patterns=(
            rf"\bmy name is\s+{_NAME}",
            rf"\bthis is\s+{_NAME}",
            rf"\bi'?m\s+{_NAME}",
            rf"\bi am\s+{_NAME}",
        ),
        bare_name_pattern=r"^[A-Z][a-zA-Z'\-]+(?:\s+[A-Z][a-zA-Z'\-]+){0,2}$",
        name_stopwords=(
            "a", "an", "the", "and", "i", "in", "my", "me", "with", "from", "about",
            "calling", "having", "here", "just", "not", "so", "very", "really",
            "because", "but", "at", "on", "for", "to", "is", "was", "been", "going",
            "sorry", "afraid", "worried", "scared", "bleeding", "still", "also",
            "hello", "hi", "hey", "yes", "no", "yeah", "okay", "ok", "thanks",
            "thank", "please", "help", "um", "uh", "well",
        ),
        phone_pattern=r"(?<!\d)(?:\+?1[-.\s]?)?\(?(\d{3})\)?[-.\s]?(\d{3})[-.\s]?(\d{4})(?!\d)",
        callback_patterns=(
            r"\bcall me back\s+(?:at\s+|around\s+|in\s+the\s+)?([^.!?,]+)",
            r"\bprefer(?:\s+a\s+call)?\s+(?:at\s+|in\s+the\s+)?([^.!?,]+)",
            r"\b(morning|afternoon|evening|tonight)\b",
        ),
    ),
)


def load_lexicon(path: str | Path | None) -> Lexicon:
    """Load a lexicon from a JSON file, or return the built-in one."""
    if not path:
        return DEFAULT_LEXICON
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    lexicon = Lexicon.model_validate(data)
    logger.info("Loaded lexicon %s from %s", lexicon.version, path)
    return lexicon
