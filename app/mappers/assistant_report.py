"""Urgency assessment for reports posted by the Telnyx AI assistant."""

import re

from app.lexicon import DEFAULT_LEXICON, Lexicon
from app.mappers.info_extractor import normalize_phone
from app.mappers.urgency_classifier import classify, tier_from_pain_level
from app.schemas.call import UrgencyTier, UtteranceClassification
from app.schemas.telnyx import AssistantGatherReport

# "Bob Smith (+17346744780) is requesting ..."
_REASON_CALLER_RE = re.compile(r"^\s*([^()]+?)\s*\((\+?[\d\s\-.]+)\)")


def assess_report(
    report: AssistantGatherReport, lexicon: Lexicon = DEFAULT_LEXICON
) -> tuple[UrgencyTier, UtteranceClassification]:
    """Pick a tier for an assistant report.

    An explicit emergency flag wins, then a pain level of 7 or more. When
    the assistant gave no flag, the reasons text is scored by the keyword
    classifier. Everything else is non-emergency.
    """
    classification = classify(report.reasons, lexicon)

    if report.emergency is True:
        return UrgencyTier.emergency, classification
    if tier_from_pain_level(report.pain_level) == UrgencyTier.emergency:
        return UrgencyTier.emergency, classification
    if report.emergency is None and report.reasons and report.reasons.strip():
        return classification.type, classification
    return UrgencyTier.non_emergency, classification


def parse_reason_caller(reason: str | None) -> tuple[str | None, str | None]:
    """Pull the caller's name and phone out of an emergency status reason."""
    if not reason:
        return None, None
    m = _REASON_CALLER_RE.match(reason)
    if not m:
        return None, None
    return m.group(1).strip() or None, normalize_phone(m.group(2))
