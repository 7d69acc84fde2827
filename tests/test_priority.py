import pytest

from triage.modules.queries.schemas import ClassifierInsights, Tag
from triage.modules.triage.priority import detect_priority


@pytest.mark.parametrize("keyword", ["emergency", "critical", "immediately", "asap"])
@pytest.mark.parametrize("tags", [[], [Tag(name="feedback", confidence=0.9)], [Tag(name="low", confidence=1.0)]])
def test_critical_keywords_never_yield_low(keyword, tags):
    insights = ClassifierInsights(category="feedback", sentiment="positive", urgency="low", confidence=0.9)
    result = detect_priority(f"Please look at this {keyword.upper()} thing", tags, insights)
    assert result.priority != "low"
    assert result.priority == "urgent"


def test_no_signals_defaults_to_medium_with_low_confidence():
    result = detect_priority("Hello, I have a small question about my account", [], None)
    assert result.priority == "medium"
    assert result.urgency == "medium"
    assert result.confidence == 0.4
    assert result.reasons == [
        "No urgency keywords detected",
        "No tags available",
        "No AI insights available",
    ]


def test_urgent_and_immediate_message_is_urgent():
    result = detect_priority("This is urgent, I need immediate help with my bug", [], None)
    assert result.priority == "urgent"
    assert result.urgency == "critical"
    assert 'Keyword: "urgent"' in result.reasons
    assert 'Keyword: "immediate"' in result.reasons
    assert result.confidence == 0.8


def test_single_keyword_gives_medium_confidence():
    result = detect_priority("Can you reply soon?", [], None)
    assert result.priority == "high"
    assert result.confidence == 0.6


def test_low_keyword_in_text_does_not_vote():
    result = detect_priority("Fix it whenever you can", [], None)
    assert result.priority == "medium"
    assert result.urgency == "medium"
    assert result.reasons[0] == 'Keyword: "whenever"'
    assert result.confidence == 0.6


@pytest.mark.parametrize("message", ["no rush, eventually is fine", "please be fast"])
def test_low_and_medium_text_buckets_keep_medium_default(message):
    assert detect_priority(message, [], None).priority == "medium"


def test_low_comes_from_tags_or_insights_not_text():
    result = detect_priority("whenever works", [Tag(name="feedback", confidence=0.9)], None)
    assert result.priority == "low"


def test_tag_prefixes_are_stripped():
    result = detect_priority("hi", [Tag(name="Urgency:Critical", confidence=0.2)], None)
    assert result.priority == "urgent"
    assert "Tag: critical → urgent" in result.reasons


def test_tag_confidence_does_not_gate_priority():
    result = detect_priority("hi", [Tag(name="complaint", confidence=0.0)], None)
    assert result.priority == "high"


def test_high_beats_low_across_sources():
    insights = ClassifierInsights(category="billing", sentiment="positive", confidence=0.7)
    result = detect_priority("thanks", [Tag(name="feedback", confidence=0.9)], insights)
    assert result.priority == "high"


def test_insight_tables():
    assert detect_priority("x", [], ClassifierInsights(sentiment="Very Negative")).priority == "urgent"
    assert detect_priority("x", [], ClassifierInsights(category="security")).priority == "urgent"
    assert detect_priority("x", [], ClassifierInsights(urgency="critical")).priority == "urgent"
    assert detect_priority("x", [], ClassifierInsights(urgency="high")).priority == "high"
    assert detect_priority("x", [], ClassifierInsights(sentiment="positive")).priority == "low"
    assert detect_priority("x", [], ClassifierInsights(category="question")).priority == "medium"


def test_unmapped_insights_are_explained():
    result = detect_priority("x", [], ClassifierInsights(category="weather", sentiment="puzzled"))
    assert result.priority == "medium"
    assert "No priority indicators in AI insights" in result.reasons


def test_detection_is_deterministic():
    args = ("ASAP please, this is important", [Tag(name="bug", confidence=0.8)], ClassifierInsights(sentiment="negative"))
    assert detect_priority(*args) == detect_priority(*args)
