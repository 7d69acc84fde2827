from typing import Any, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from triage.core.base import new_id, utcnow
from triage.modules.queries.models import Query
from triage.modules.queries.schemas import ClassifierInsights, QueryCreate, QueryOut, Tag
from triage.platform.failover import translate_store_errors
from triage.platform.memory_store import MemoryStore

def _to_out(row: Query | dict[str, Any]) -> QueryOut:
    get = row.get if isinstance(row, dict) else lambda k: getattr(row, k)
    return QueryOut(
        id=get("id"),
        channel=get("channel"),
        subject=get("subject"),
        message=get("message"),
        customer_name=get("customer_name"),
        customer_email=get("customer_email"),
        tags=[Tag.model_validate(t) for t in (get("tags") or [])],
        priority=get("priority") or "medium",
        status=get("status") or "new",
        team_id=get("team_id"),
        assignee_id=get("assignee_id"),
        classifier_insights=ClassifierInsights.model_validate(get("ai_insights")) if get("ai_insights") else None,
        created_at=get("created_at"),
        updated_at=get("updated_at"),
    )

class QueryRepository:
    """SQL-backed query store; one short-lived session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @translate_store_errors
    async def create(self, payload: QueryCreate) -> QueryOut:
        data = payload.model_dump()
        async with self.session_factory() as session:
            obj = Query(**data)
            session.add(obj)
            await session.commit()
            return _to_out(obj)

    @translate_store_errors
    async def find_by_id(self, query_id: str) -> QueryOut | None:
        async with self.session_factory() as session:
            obj = await session.get(Query, query_id)
            return _to_out(obj) if obj else None

    @translate_store_errors
    async def list(self) -> Sequence[QueryOut]:
        async with self.session_factory() as session:
            res = await session.execute(select(Query).order_by(Query.created_at.desc()))
            return [_to_out(obj) for obj in res.scalars().all()]

    @translate_store_errors
    async def _update(self, query_id: str, **data) -> QueryOut | None:
        async with self.session_factory() as session:
            obj = await session.get(Query, query_id)
            if not obj:
                return None
            for k, v in data.items():
                setattr(obj, k, v)
            obj.updated_at = utcnow()
            await session.commit()
            return _to_out(obj)

    async def update_priority(self, query_id: str, priority: str) -> QueryOut | None:
        return await self._update(query_id, priority=priority)

    async def update_status(self, query_id: str, status: str) -> QueryOut | None:
        return await self._update(query_id, status=status)

    async def update_tags(self, query_id: str, tags: Sequence[Tag]) -> QueryOut | None:
        return await self._update(query_id, tags=[t.model_dump() for t in tags])

    async def assign(self, query_id: str, user_id: str | None = None, team_id: str | None = None) -> QueryOut | None:
        data = {}
        if user_id is not None: data["assignee_id"] = user_id
        if team_id is not None: data["team_id"] = team_id
        return await self._update(query_id, **data)

    async def update_ai_insights(self, query_id: str, insights: ClassifierInsights) -> QueryOut | None:
        return await self._update(query_id, ai_insights=insights.model_dump())

class InMemoryQueryRepository:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def create(self, payload: QueryCreate) -> QueryOut:
        now = utcnow()
        row = {
            **payload.model_dump(),
            "id": new_id(),
            "team_id": None,
            "assignee_id": None,
            "ai_insights": None,
            "created_at": now,
            "updated_at": now,
        }
        self.store.queries[row["id"]] = row
        return _to_out(row)

    async def find_by_id(self, query_id: str) -> QueryOut | None:
        row = self.store.queries.get(query_id)
        return _to_out(row) if row else None

    async def list(self) -> Sequence[QueryOut]:
        # reverse first so equal timestamps keep newest-inserted first
        rows = sorted(reversed(list(self.store.queries.values())), key=lambda r: r["created_at"], reverse=True)
        return [_to_out(r) for r in rows]

    async def _update(self, query_id: str, **data) -> QueryOut | None:
        row = self.store.queries.get(query_id)
        if row is None:
            return None
        row.update(data)
        row["updated_at"] = max(utcnow(), row["created_at"])
        return _to_out(row)

    async def update_priority(self, query_id: str, priority: str) -> QueryOut | None:
        return await self._update(query_id, priority=priority)

    async def update_status(self, query_id: str, status: str) -> QueryOut | None:
        return await self._update(query_id, status=status)

    async def update_tags(self, query_id: str, tags: Sequence[Tag]) -> QueryOut | None:
        return await self._update(query_id, tags=[t.model_dump() for t in tags])

    async def assign(self, query_id: str, user_id: str | None = None, team_id: str | None = None) -> QueryOut | None:
        data = {}
        if user_id is not None: data["assignee_id"] = user_id
        if team_id is not None: data["team_id"] = team_id
        return await self._update(query_id, **data)

    async def update_ai_insights(self, query_id: str, insights: ClassifierInsights) -> QueryOut | None:
        return await self._update(query_id, ai_insights=insights.model_dump())
