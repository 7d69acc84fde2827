from typing import Any, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from triage.core.base import new_id, utcnow
from triage.modules.activity.models import QueryActivity
from triage.modules.activity.schemas import ActivityAction, ActivityOut
from triage.platform.failover import translate_store_errors
from triage.platform.memory_store import MemoryStore

def _to_out(obj: QueryActivity) -> ActivityOut:
    return ActivityOut(
        id=obj.id,
        query_id=obj.query_id,
        actor_id=obj.actor_id,
        action=obj.action,
        metadata=obj.details,
        created_at=obj.created_at,
    )

class ActivityRepository:
    """Append-only activity log; records are never updated or deleted."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @translate_store_errors
    async def log(self, query_id: str, action: ActivityAction, metadata: dict[str, Any] | None = None, actor_id: str | None = None) -> ActivityOut:
        async with self.session_factory() as session:
            obj = QueryActivity(query_id=query_id, action=action, details=metadata, actor_id=actor_id)
            session.add(obj)
            await session.commit()
            return _to_out(obj)

    @translate_store_errors
    async def list_by_query(self, query_id: str) -> Sequence[ActivityOut]:
        q = select(QueryActivity).where(QueryActivity.query_id == query_id).order_by(QueryActivity.created_at.asc())
        async with self.session_factory() as session:
            res = await session.execute(q)
            return [_to_out(obj) for obj in res.scalars().all()]

class InMemoryActivityRepository:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def log(self, query_id: str, action: ActivityAction, metadata: dict[str, Any] | None = None, actor_id: str | None = None) -> ActivityOut:
        record = ActivityOut(
            id=new_id(),
            query_id=query_id,
            actor_id=actor_id,
            action=action,
            metadata=metadata,
            created_at=utcnow(),
        )
        self.store.activities.append(record.model_dump())
        return record

    async def list_by_query(self, query_id: str) -> Sequence[ActivityOut]:
        rows = [a for a in self.store.activities if a["query_id"] == query_id]
        rows.sort(key=lambda a: a["created_at"])
        return [ActivityOut.model_validate(a) for a in rows]
