"""Background job handlers for the three triage queues.

Handlers re-raise every failure so the queue retries the job.
"""
import logging
from typing import Any
from triage.modules.queries.schemas import ClassifierInsights, Tag
from triage.modules.triage.schemas import TriageResult
from triage.modules.triage.service import TriageService
from triage.platform.ports.classifier import ClassifierPort

log = logging.getLogger(__name__)

def insight_tags(insights: ClassifierInsights) -> list[Tag]:
    tags = []
    if insights.category:
        tags.append(Tag(name=insights.category, confidence=insights.confidence))
    if insights.sentiment:
        tags.append(Tag(name=f"sentiment:{insights.sentiment}", confidence=insights.confidence))
    if insights.urgency:
        tags.append(Tag(name=f"urgency:{insights.urgency}", confidence=insights.confidence))
    return tags

def merge_tags(existing: list[Tag], derived: list[Tag]) -> list[Tag]:
    # derived tags replace same-named tags from a previous classification, order kept
    names = {t.name.lower() for t in derived}
    return [t for t in existing if t.name.lower() not in names] + derived

class JobHandlers:
    def __init__(self, queries, classifier: ClassifierPort, triage: TriageService):
        self.queries = queries
        self.classifier = classifier
        self.triage = triage

    async def classify(self, payload: dict[str, Any]) -> ClassifierInsights | None:
        query_id = payload["query_id"]
        insights = await self.classifier.classify(payload["message"])
        query = await self.queries.update_ai_insights(query_id, insights)
        if query is None:
            log.warning("Classification finished for unknown query %s", query_id)
            return None
        await self.queries.update_tags(query_id, merge_tags(query.tags, insight_tags(insights)))
        log.info("Classification complete for query %s: %s", query_id, insights.model_dump())
        return insights

    async def score(self, payload: dict[str, Any]) -> str:
        """Keyword-only priority pass; superseded by the full triage on the routing queue."""
        query_id = payload["query_id"]
        urgency = "urgent" if "urgent" in payload["message"].lower() else "medium"
        # the queues are unordered: writing "medium" could undo a routing job that already ran
        if urgency == "urgent":
            await self.queries.update_priority(query_id, urgency)
            await self.queries.update_status(query_id, "escalated")
        log.info("Priority scored for query %s: %s", query_id, urgency)
        return urgency

    async def route(self, payload: dict[str, Any]) -> TriageResult:
        return await self.triage.process_query(payload["query_id"])

    async def dispatch(self, job_name: str, payload: dict[str, Any]) -> None:
        handler = {"classify": self.classify, "score": self.score, "route": self.route}.get(job_name)
        if handler is None:
            raise ValueError(f"Unknown job {job_name!r}")
        await handler(payload)
