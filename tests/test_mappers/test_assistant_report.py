from app.mappers.assistant_report import assess_report, parse_reason_caller
from app.schemas.call import UrgencyTier
from app.schemas.telnyx import AssistantGatherReport


def _report(**kwargs) -> AssistantGatherReport:
    return AssistantGatherReport.model_validate({"call_control_id": "v3:abc", **kwargs})


def test_emergency_flag_wins():
    tier, _ = assess_report(_report(Emergency=True, Reasons="wants a cleaning", **{"Pain level": 1}))

    assert tier == UrgencyTier.emergency


def test_high_pain_level_is_emergency_even_when_flag_false():
    tier, _ = assess_report(_report(Emergency=False, **{"Pain level": "8"}))

    assert tier == UrgencyTier.emergency


def test_low_pain_and_false_flag_is_non_emergency():
    tier, _ = assess_report(_report(Emergency=False, Reasons="severe pain", **{"Pain level": 3}))

    assert tier == UrgencyTier.non_emergency


def test_reasons_are_classified_without_flag():
    tier, classification = assess_report(_report(Reasons="severe pain and facial swelling"))

    assert tier == UrgencyTier.emergency
    assert classification.confidence == 55


def test_ambiguous_reasons_stay_uncertain():
    tier, _ = assess_report(_report(Reasons="my tooth feels weird"))

    assert tier == UrgencyTier.uncertain


def test_empty_report_is_non_emergency():
    tier, classification = assess_report(_report())

    assert tier == UrgencyTier.non_emergency
    assert classification.confidence == 0


def test_aliases_accept_snake_case():
    report = AssistantGatherReport.model_validate(
        {"conversational_id": "conv-1", "emergency": True, "reasons": "x", "pain_level": 9}
    )

    assert report.storage_key == "conv-1"
    assert report.emergency is True
    assert report.pain_level == 9


def test_parse_reason_caller():
    name, phone = parse_reason_caller(
        "Bob Smith (+17346744780) is requesting an emergency appointment"
    )

    assert name == "Bob Smith"
    assert phone == "7346744780"


def test_parse_reason_caller_without_match():
    assert parse_reason_caller("caller needs help") == (None, None)
    assert parse_reason_caller(None) == (None, None)
