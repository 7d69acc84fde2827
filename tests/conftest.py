import pytest
import pytest_asyncio

from triage.core.config import settings
from triage.modules.activity.repository import InMemoryActivityRepository
from triage.modules.queries.repository import InMemoryQueryRepository
from triage.modules.queries.schemas import QueryCreate
from triage.modules.teams.repository import InMemoryTeamRepository
from triage.modules.teams.service import ensure_default_teams
from triage.modules.triage.service import TriageService
from triage.platform.memory_store import MemoryStore
from triage.platform.provider_registry import registry


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def queries(store):
    return InMemoryQueryRepository(store)


@pytest.fixture
def teams(store):
    return InMemoryTeamRepository(store)


@pytest.fixture
def activities(store):
    return InMemoryActivityRepository(store)


@pytest.fixture
def triage_service(queries, teams, activities) -> TriageService:
    return TriageService(queries, teams, activities)


@pytest_asyncio.fixture
async def seeded_teams(teams):
    return {t.name: t for t in await ensure_default_teams(teams, with_users=True)}


@pytest.fixture
def make_query(queries):
    async def _make(message: str = "Hello there", **overrides):
        data = {"channel": "email", "subject": "Help", "message": message, **overrides}
        return await queries.create(QueryCreate(**data))

    return _make


@pytest.fixture
def memory_registry(monkeypatch):
    monkeypatch.setattr(settings, "STORE_PROVIDER", "memory")
    monkeypatch.setattr(settings, "QUEUE_PROVIDER", "memory")
    monkeypatch.setattr(settings, "CLASSIFIER_PROVIDER", "heuristic")
    registry.reset()
    yield registry
    registry.reset()
