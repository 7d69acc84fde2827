import asyncio
import contextlib
import json

import httpx
import pytest

from triage.core.errors import ClassifierFailure
from triage.modules.jobs.handlers import JobHandlers, insight_tags, merge_tags
from triage.modules.queries.schemas import ClassifierInsights, QueryCreate, Tag
from triage.modules.queries.service import QueryService
from triage.platform.adapters.classifier_heuristic import HeuristicClassifier
from triage.platform.adapters.classifier_openai import OpenAIClassifier
from triage.platform.adapters.queue_memory import InMemoryJobQueue, backoff_seconds
from triage.platform.ports.job_queue import CLASSIFICATION_QUEUE, PRIORITY_QUEUE, ROUTING_QUEUE


class FailingClassifier:
    async def classify(self, message):
        raise ClassifierFailure("classifier returned 503")


@pytest.fixture
def jobs():
    return InMemoryJobQueue(max_attempts=3, backoff_cap_seconds=0)


@pytest.fixture
def query_service(queries, activities, jobs):
    return QueryService(queries, activities, jobs)


@pytest.mark.asyncio
async def test_create_query_enqueues_three_jobs(query_service, jobs, activities):
    query = await query_service.create_query(QueryCreate(channel="email", subject="Hi", message="Where is my invoice?"))
    assert jobs.pending_count(CLASSIFICATION_QUEUE) == 1
    assert jobs.pending_count(PRIORITY_QUEUE) == 1
    assert jobs.pending_count(ROUTING_QUEUE) == 1
    entries = await activities.list_by_query(query.id)
    assert [e.action for e in entries] == ["created"]


@pytest.mark.asyncio
async def test_jobs_classify_score_and_route(query_service, jobs, queries, triage_service, seeded_teams):
    handlers = JobHandlers(queries, HeuristicClassifier(), triage_service)
    query = await query_service.create_query(
        QueryCreate(channel="email", subject="Charge", message="I was charged twice, refund please")
    )

    assert await jobs.drain(CLASSIFICATION_QUEUE, handlers.dispatch) == 1
    classified = await queries.find_by_id(query.id)
    assert classified.classifier_insights.category == "billing"
    assert "billing" in [t.name for t in classified.tags]

    await jobs.drain(PRIORITY_QUEUE, handlers.dispatch)
    await jobs.drain(ROUTING_QUEUE, handlers.dispatch)
    routed = await queries.find_by_id(query.id)
    assert routed.team_id == seeded_teams["Billing Team"].id
    assert routed.priority == "high"


@pytest.mark.asyncio
async def test_score_marks_urgent_messages(queries, triage_service, make_query):
    handlers = JobHandlers(queries, HeuristicClassifier(), triage_service)
    query = await make_query("URGENT: site down")
    assert await handlers.score({"query_id": query.id, "message": query.message}) == "urgent"
    stored = await queries.find_by_id(query.id)
    assert (stored.priority, stored.status) == ("urgent", "escalated")


@pytest.mark.asyncio
async def test_score_after_route_keeps_triaged_priority(queries, triage_service, seeded_teams, make_query):
    handlers = JobHandlers(queries, HeuristicClassifier(), triage_service)
    query = await make_query("The export page is slow", tags=[Tag(name="complaint", confidence=0.9)])

    await handlers.route({"query_id": query.id})
    assert await handlers.score({"query_id": query.id, "message": query.message}) == "medium"

    stored = await queries.find_by_id(query.id)
    assert (stored.priority, stored.status) == ("high", "escalated")


@pytest.mark.asyncio
async def test_score_without_urgent_text_leaves_query_untouched(queries, triage_service, make_query):
    handlers = JobHandlers(queries, HeuristicClassifier(), triage_service)
    query = await make_query("just checking in", priority="low")
    await handlers.score({"query_id": query.id, "message": query.message})
    stored = await queries.find_by_id(query.id)
    assert (stored.priority, stored.status) == ("low", "new")


@pytest.mark.asyncio
async def test_classifier_failure_is_retried_then_dead_lettered(jobs, queries, triage_service, make_query):
    handlers = JobHandlers(queries, FailingClassifier(), triage_service)
    query = await make_query("hello")
    await jobs.enqueue(CLASSIFICATION_QUEUE, "classify", {"query_id": query.id, "message": query.message})

    assert await jobs.drain(CLASSIFICATION_QUEUE, handlers.dispatch) == 3
    dead = jobs.dead_letters(CLASSIFICATION_QUEUE)
    assert len(dead) == 1
    assert dead[0].attempts == 3
    assert "503" in dead[0].last_error
    assert (await queries.find_by_id(query.id)).classifier_insights is None


@pytest.mark.asyncio
async def test_unknown_job_name_fails(queries, triage_service):
    handlers = JobHandlers(queries, HeuristicClassifier(), triage_service)
    with pytest.raises(ValueError):
        await handlers.dispatch("summarize", {})


def test_insight_tags_and_merge():
    insights = ClassifierInsights(category="bug", sentiment="negative", urgency="high", confidence=0.7)
    derived = insight_tags(insights)
    assert [t.name for t in derived] == ["bug", "sentiment:negative", "urgency:high"]
    assert all(t.confidence == 0.7 for t in derived)

    merged = merge_tags([Tag(name="vip", confidence=1.0), Tag(name="BUG", confidence=0.2)], derived)
    assert [t.name for t in merged] == ["vip", "bug", "sentiment:negative", "urgency:high"]


def test_backoff_is_capped():
    assert backoff_seconds(1, 60) == 2
    assert backoff_seconds(3, 60) == 8
    assert backoff_seconds(20, 60) == 60


@pytest.mark.asyncio
async def test_openai_classifier_parses_response():
    def handle(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer sk-test"
        content = json.dumps({"category": "billing", "sentiment": "negative", "urgency": "high", "confidence": 0.9})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    classifier = OpenAIClassifier("sk-test", transport=httpx.MockTransport(handle))
    insights = await classifier.classify("charged twice")
    assert insights == ClassifierInsights(category="billing", sentiment="negative", urgency="high", confidence=0.9)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="overloaded"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json={"choices": [{"message": {"content": "not json"}}]}),
    ],
)
async def test_openai_classifier_failures(response):
    classifier = OpenAIClassifier("sk-test", transport=httpx.MockTransport(lambda request: response))
    with pytest.raises(ClassifierFailure):
        await classifier.classify("hello")


def test_openai_classifier_requires_key():
    with pytest.raises(ValueError):
        OpenAIClassifier("")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message,category,sentiment,urgency",
    [
        ("I was charged twice", "billing", "neutral", "medium"),
        ("The app keeps crashing, this is unacceptable. Fix ASAP", "bug", "negative", "critical"),
        ("Thanks, love the new look", "feedback", "positive", "medium"),
        ("How do I export my data?", "question", "neutral", "medium"),
    ],
)
async def test_heuristic_classifier(message, category, sentiment, urgency):
    insights = await HeuristicClassifier().classify(message)
    assert (insights.category, insights.sentiment, insights.urgency) == (category, sentiment, urgency)
    assert 0.5 <= insights.confidence <= 1.0


@pytest.mark.asyncio
async def test_failing_job_backoff_does_not_block_the_queue():
    queue = InMemoryJobQueue(max_attempts=3, backoff_cap_seconds=30)
    done = asyncio.Event()
    seen = []

    async def handler(name, payload):
        seen.append(name)
        if name == "bad":
            raise RuntimeError("not yet")
        done.set()

    await queue.enqueue(ROUTING_QUEUE, "bad", {})
    await queue.enqueue(ROUTING_QUEUE, "good", {})
    consumer = asyncio.create_task(queue.consume(ROUTING_QUEUE, handler))
    try:
        await asyncio.wait_for(done.wait(), timeout=2)
    finally:
        consumer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await consumer
    assert seen == ["bad", "good"]
    assert queue.delayed_count() == 1

    await queue.close()
    assert queue.delayed_count() == 0
