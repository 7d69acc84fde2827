"""Priority detection from message text, tags and classifier insights.

Three independent sources each vote for a priority; the final verdict is the
highest vote (urgent > high > low > medium, medium being the fallback when no
source says anything useful). Message text only votes for urgent or high;
calmer keywords are recorded as reasons. Every source leaves at least one
reason string so the verdict can be explained in the activity log.
"""
import logging
from typing import Sequence
from triage.modules.queries.schemas import ClassifierInsights, Priority, Tag
from triage.modules.triage.normalize import normalize_label
from triage.modules.triage.schemas import PriorityResult, UrgencyBucket

log = logging.getLogger(__name__)

# message keyword -> urgency bucket
URGENCY_KEYWORDS: dict[str, UrgencyBucket] = {
    "critical": "critical",
    "immediate": "critical",  # also covers "immediately"
    "asap": "critical",
    "emergency": "critical",
    "urgent": "high",
    "important": "high",
    "priority": "high",
    "soon": "high",
    "quickly": "high",
    "fast": "medium",
    "whenever": "low",
    "eventually": "low",
    "no_rush": "low",
}

# checked in order; first keyword contained in the tag wins
TAG_PRIORITY_KEYWORDS: list[tuple[tuple[str, ...], Priority]] = [
    (("urgent", "critical"), "urgent"),
    (("high", "important", "complaint", "bug"), "high"),
    (("low", "feedback"), "low"),
]

SENTIMENT_PRIORITY: dict[str, Priority] = {
    "negative": "high",
    "very_negative": "urgent",
    "angry": "urgent",
    "frustrated": "high",
    "neutral": "medium",
    "positive": "low",
}

CATEGORY_PRIORITY: dict[str, Priority] = {
    "complaint": "high",
    "bug": "high",
    "error": "high",
    "security": "urgent",
    "billing": "high",
    "payment": "high",
    "question": "medium",
    "feedback": "low",
    "request": "medium",
}

AI_URGENCY_PRIORITY: dict[str, Priority] = {
    "critical": "urgent",
    "high": "high",
}

BUCKET_RANK: dict[UrgencyBucket, int] = {"low": 0, "medium": 1, "high": 2, "critical": 3}

PRIORITY_TO_BUCKET: dict[Priority, UrgencyBucket] = {
    "urgent": "critical",
    "high": "high",
    "medium": "medium",
    "low": "low",
}

BUCKET_TO_PRIORITY: dict[UrgencyBucket, Priority] = {b: p for p, b in PRIORITY_TO_BUCKET.items()}

VOTING_BUCKETS: frozenset[UrgencyBucket] = frozenset({"critical", "high"})

def combine(votes: Sequence[Priority]) -> Priority:
    if "urgent" in votes:
        return "urgent"
    if "high" in votes:
        return "high"
    if "low" in votes:
        return "low"
    return "medium"

def _confidence(reason_count: int) -> float:
    if reason_count > 1:
        return 0.8
    if reason_count == 1:
        return 0.6
    return 0.4

def urgency_from_message(message: str) -> tuple[UrgencyBucket, list[str], bool]:
    lower = message.lower()
    bucket: UrgencyBucket = "low"
    reasons = []
    for keyword, level in URGENCY_KEYWORDS.items():
        if keyword in lower:
            reasons.append(f'Keyword: "{keyword}"')
            if BUCKET_RANK[level] > BUCKET_RANK[bucket]:
                bucket = level
    if not reasons:
        return bucket, ["No urgency keywords detected"], False
    return bucket, reasons, True

def priority_from_tags(tags: Sequence[Tag]) -> tuple[Priority, list[str], bool]:
    if not tags:
        return "medium", ["No tags available"], False
    votes: list[Priority] = []
    reasons = []
    for tag in tags:
        name = normalize_label(tag.name)
        for keywords, priority in TAG_PRIORITY_KEYWORDS:
            if any(k in name for k in keywords):
                votes.append(priority)
                reasons.append(f"Tag: {name} → {priority}")
                break
    if not votes:
        return "medium", ["No priority indicators in tags"], False
    return combine(votes), reasons, True

def priority_from_insights(insights: ClassifierInsights | None) -> tuple[Priority, list[str], bool]:
    if insights is None:
        return "medium", ["No AI insights available"], False
    votes: list[Priority] = []
    reasons = []

    if insights.sentiment:
        priority = SENTIMENT_PRIORITY.get(insights.sentiment.strip().lower().replace(" ", "_"))
        if priority:
            votes.append(priority)
            reasons.append(f"Sentiment: {insights.sentiment} → {priority}")

    if insights.category:
        priority = CATEGORY_PRIORITY.get(insights.category.strip().lower())
        if priority:
            votes.append(priority)
            reasons.append(f"Category: {insights.category} → {priority}")

    if insights.urgency:
        priority = AI_URGENCY_PRIORITY.get(insights.urgency.strip().lower())
        if priority:
            votes.append(priority)
            reasons.append(f"AI urgency: {insights.urgency} → {priority}")

    if not votes:
        return "medium", ["No priority indicators in AI insights"], False
    return combine(votes), reasons, True

def detect_priority(message: str, tags: Sequence[Tag] = (), insights: ClassifierInsights | None = None) -> PriorityResult:
    log.debug("Detecting priority (message length %d, %d tags)", len(message), len(tags))

    bucket, text_reasons, text_hit = urgency_from_message(message)
    tag_priority, tag_reasons, tag_hit = priority_from_tags(tags)
    ai_priority, ai_reasons, ai_hit = priority_from_insights(insights)

    votes: list[Priority] = [tag_priority, ai_priority]
    # only urgent-sounding text raises the verdict; "fast" or "whenever" explain but never vote
    if text_hit and bucket in VOTING_BUCKETS:
        votes.append(BUCKET_TO_PRIORITY[bucket])

    reasons = text_reasons + tag_reasons + ai_reasons
    # "no indicators" placeholders explain the verdict but are not evidence
    evidence = sum(len(r) for r, hit in ((text_reasons, text_hit), (tag_reasons, tag_hit), (ai_reasons, ai_hit)) if hit)
    priority = combine(votes)
    result = PriorityResult(
        priority=priority,
        urgency=PRIORITY_TO_BUCKET[priority],
        confidence=_confidence(evidence),
        reasons=reasons,
    )
    log.info("Priority detected: %s (%s) reasons=%s", result.priority, result.urgency, result.reasons)
    return result
