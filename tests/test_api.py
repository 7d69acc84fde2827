import httpx
import pytest
import pytest_asyncio

from triage.bootstrap import bootstrap
from triage.main import app
from triage.modules.jobs.worker import QUEUES, build_handlers


@pytest_asyncio.fixture
async def client(memory_registry):
    await bootstrap(with_users=True)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def drain_jobs(registry):
    handlers = build_handlers()
    for queue in QUEUES:
        await registry.job_queue().drain(queue, handlers.dispatch)


@pytest.mark.asyncio
async def test_health_reports_memory_store(client):
    res = await client.get("/api/v1/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "store": "memory"}


@pytest.mark.asyncio
async def test_create_then_triage_through_jobs(client, memory_registry):
    res = await client.post("/api/v1/queries", json={
        "channel": "chat",
        "subject": "Down",
        "message": "This is urgent, I need immediate help",
    })
    assert res.status_code == 201
    query_id = res.json()["id"]
    assert res.json()["status"] == "new"

    await drain_jobs(memory_registry)

    query = (await client.get(f"/api/v1/queries/{query_id}")).json()
    assert query["priority"] == "urgent"
    assert query["status"] == "escalated"
    assert query["classifier_insights"]["urgency"] == "critical"

    actions = [a["action"] for a in (await client.get(f"/api/v1/queries/{query_id}/activities")).json()]
    assert actions[0] == "created"
    assert "team_assigned" in actions


@pytest.mark.asyncio
async def test_manual_assignment_endpoint(client):
    created = (await client.post("/api/v1/queries", json={
        "channel": "email",
        "subject": "Refund",
        "message": "refund please",
        "tags": [{"name": "refund", "confidence": 0.9}],
    })).json()

    res = await client.post(f"/api/v1/assignment/assign/{created['id']}")
    assert res.status_code == 200
    body = res.json()
    assert body["assignment"]["team_name"] == "Billing Team"
    assert body["status_transition"]["from"] == "new"


@pytest.mark.asyncio
async def test_unknown_query_is_404(client):
    res = await client.post("/api/v1/assignment/assign/nope")
    assert res.status_code == 404
    assert res.json() == {"error": "NotFound", "message": "Query nope not found"}
    assert (await client.get("/api/v1/queries/nope")).status_code == 404


@pytest.mark.asyncio
async def test_batch_and_stats_endpoints(client):
    for channel in ("email", "chat", "chat"):
        await client.post("/api/v1/queries", json={"channel": channel, "subject": "s", "message": "hello"})

    res = await client.post("/api/v1/assignment/assign-by-filter", json={"channel": "chat"})
    assert res.json()["processed"] == 2

    res = await client.post("/api/v1/assignment/assign-all")
    assert res.json()["processed"] == 1

    stats = (await client.get("/api/v1/assignment/stats")).json()
    assert stats["total"] == 3
    assert stats["assigned"] == 3
    assert stats["by_team"] == {"Support Team": 3}


@pytest.mark.asyncio
async def test_status_update_and_manual_assign(client):
    created = (await client.post("/api/v1/queries", json={"channel": "social", "subject": "s", "message": "m"})).json()

    res = await client.patch(f"/api/v1/queries/{created['id']}/status", json={"status": "resolved", "actor_id": "u1"})
    assert res.json()["status"] == "resolved"

    res = await client.post(f"/api/v1/queries/{created['id']}/assign", json={"team_id": "t1"})
    assert res.json()["team_id"] == "t1"

    actions = [a["action"] for a in (await client.get(f"/api/v1/queries/{created['id']}/activities")).json()]
    assert actions == ["created", "status_changed", "assigned"]


@pytest.mark.asyncio
async def test_invalid_payload_is_rejected(client):
    res = await client.post("/api/v1/queries", json={"channel": "fax", "subject": "s", "message": "m"})
    assert res.status_code == 422
