import logging
from triage.modules.queries.schemas import ClassifierInsights
from triage.platform.ports.classifier import ClassifierPort

log = logging.getLogger("classifier.heuristic")

# first category whose cue appears in the message wins
_CATEGORY_CUES: list[tuple[str, tuple[str, ...]]] = [
    ("security", ("hacked", "breach", "phishing", "unauthorized")),
    ("billing", ("invoice", "charged", "refund", "billing", "payment")),
    ("bug", ("bug", "crash", "error", "broken", "not working")),
    ("complaint", ("terrible", "worst", "disappointed", "unacceptable", "complain")),
    ("feedback", ("suggest", "feedback", "love", "great job")),
    ("request", ("please add", "could you", "request", "would like")),
]
_NEGATIVE = ("angry", "terrible", "worst", "hate", "unacceptable", "disappointed", "frustrat")
_POSITIVE = ("thanks", "thank you", "love", "great", "awesome")
_CRITICAL = ("emergency", "asap", "immediate", "critical")
_HIGH = ("urgent", "soon", "quickly", "important")

class HeuristicClassifier(ClassifierPort):
    """Deterministic keyword classifier used when no external service is configured."""

    async def classify(self, message: str) -> ClassifierInsights:
        text = message.lower()
        category = next((c for c, cues in _CATEGORY_CUES if any(cue in text for cue in cues)), "question")

        if any(w in text for w in _NEGATIVE):
            sentiment = "negative"
        elif any(w in text for w in _POSITIVE):
            sentiment = "positive"
        else:
            sentiment = "neutral"

        if any(w in text for w in _CRITICAL):
            urgency = "critical"
        elif any(w in text for w in _HIGH):
            urgency = "high"
        else:
            urgency = "medium"

        hits = sum(1 for v in (category != "question", sentiment != "neutral", urgency != "medium") if v)
        insights = ClassifierInsights(category=category, sentiment=sentiment, urgency=urgency, confidence=round(0.5 + 0.15 * hits, 2))
        log.debug("Heuristic classification: %s", insights.model_dump())
        return insights
