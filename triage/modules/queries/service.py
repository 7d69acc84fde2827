import logging
from typing import Sequence
from triage.core.errors import NotFound
from triage.modules.activity.schemas import ActivityOut
from triage.modules.queries.schemas import QueryCreate, QueryOut, QueryStatus
from triage.platform.ports.job_queue import CLASSIFICATION_QUEUE, PRIORITY_QUEUE, ROUTING_QUEUE, JobQueuePort

log = logging.getLogger(__name__)

class QueryService:
    def __init__(self, queries, activities, jobs: JobQueuePort):
        self.queries = queries
        self.activities = activities
        self.jobs = jobs

    async def create_query(self, payload: QueryCreate) -> QueryOut:
        created = await self.queries.create(payload)
        await self.activities.log(created.id, "created", {
            "channel": created.channel,
            "priority": created.priority,
            "status": created.status,
        })
        await self.enqueue_triage(created)
        log.info("Query %s created from %s", created.id, created.channel)
        return created

    async def enqueue_triage(self, query: QueryOut) -> None:
        # the three jobs run independently; routing does not wait for classification
        await self.jobs.enqueue(CLASSIFICATION_QUEUE, "classify", {"query_id": query.id, "message": query.message})
        await self.jobs.enqueue(PRIORITY_QUEUE, "score", {"query_id": query.id, "message": query.message})
        await self.jobs.enqueue(ROUTING_QUEUE, "route", {"query_id": query.id})

    async def list_queries(self) -> Sequence[QueryOut]:
        return await self.queries.list()

    async def get_query(self, query_id: str) -> QueryOut:
        query = await self.queries.find_by_id(query_id)
        if query is None:
            raise NotFound("Query", query_id)
        return query

    async def update_status(self, query_id: str, status: QueryStatus, actor_id: str | None = None, reason: str | None = None) -> QueryOut:
        updated = await self.queries.update_status(query_id, status)
        if updated is None:
            raise NotFound("Query", query_id)
        await self.activities.log(query_id, "status_changed", {"status": status, "reason": reason}, actor_id)
        return updated

    async def assign_query(self, query_id: str, user_id: str | None = None, team_id: str | None = None, actor_id: str | None = None) -> QueryOut:
        updated = await self.queries.assign(query_id, user_id, team_id)
        if updated is None:
            raise NotFound("Query", query_id)
        await self.activities.log(query_id, "assigned", {"userId": user_id, "teamId": team_id}, actor_id)
        return updated

    async def list_activities(self, query_id: str) -> Sequence[ActivityOut]:
        await self.get_query(query_id)
        return await self.activities.list_by_query(query_id)
