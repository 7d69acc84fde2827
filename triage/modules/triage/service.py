import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from triage.core.errors import NotFound
from triage.modules.activity.schemas import ActivityAction
from triage.modules.queries.schemas import Priority, QueryStatus
from triage.modules.triage import workflow
from triage.modules.triage.priority import detect_priority
from triage.modules.triage.schemas import AssignmentResult, StatusTransition, TriageResult
from triage.modules.triage.team_resolver import TeamResolver

log = logging.getLogger(__name__)

class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = defaultdict(int)

    def __contains__(self, key: str) -> bool:
        return key in self._locks

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._locks[key]
                del self._waiters[key]

class TriageService:
    """Runs priority detection, team resolution and the status workflow for one query.

    First-time triage, manual re-triage and batch triage all go through
    ``process_query``. Calls for the same query id are serialized inside this
    process; nothing prevents another process from triaging the same query.
    """

    def __init__(self, queries, teams, activities, resolver: TeamResolver | None = None):
        self.queries = queries
        self.activities = activities
        self.resolver = resolver or TeamResolver(teams)
        self._locks = KeyedLocks()

    async def process_query(self, query_id: str) -> TriageResult:
        async with self._locks.hold(query_id):
            return await self._process(query_id)

    async def _process(self, query_id: str) -> TriageResult:
        log.info("Starting triage for query %s", query_id)
        query = await self.queries.find_by_id(query_id)
        if query is None:
            raise NotFound("Query", query_id)

        priority = detect_priority(query.message, query.tags, query.classifier_insights)
        assignment = await self.resolver.assign_team(query.tags, query.channel, query.message, query.classifier_insights)

        initial_status = workflow.determine_initial_status(priority.priority, assignment.is_assigned)
        transition = workflow.get_status_transition(query.status, priority.priority, assignment.is_assigned)
        final_status = transition.to if transition else initial_status

        await self.apply_updates(query_id, priority.priority, final_status, assignment)
        await self.log_activity(query_id, priority.priority, priority.reasons, assignment, transition)
        if transition:
            workflow.log_status_transition(query_id, transition)

        log.info(
            "Triage complete for query %s: priority=%s status=%s team=%s user=%s",
            query_id, priority.priority, final_status, assignment.team_id, assignment.user_id,
        )
        return TriageResult(
            query_id=query_id,
            priority=priority.priority,
            status=final_status,
            assignment=assignment,
            status_transition=transition,
        )

    async def apply_updates(self, query_id: str, priority: Priority, status: QueryStatus, assignment: AssignmentResult) -> None:
        writes = [
            self.queries.update_priority(query_id, priority),
            self.queries.update_status(query_id, status),
        ]
        if assignment.is_assigned:
            writes.append(self.queries.assign(query_id, assignment.user_id, assignment.team_id))
        await asyncio.gather(*writes)

    async def log_activity(
        self,
        query_id: str,
        priority: Priority,
        reasons: list[str],
        assignment: AssignmentResult,
        transition: StatusTransition | None,
    ) -> None:
        entries: list[tuple[ActivityAction, dict]] = [
            ("priority_updated", {"priority": priority, "reasons": reasons, "auto": True}),
        ]
        if assignment.team_id:
            entries.append(("team_assigned", {
                "teamId": assignment.team_id,
                "teamName": assignment.team_name,
                "reason": assignment.reason,
                "auto": True,
            }))
        if assignment.user_id:
            entries.append(("user_assigned", {
                "userId": assignment.user_id,
                "userName": assignment.user_name,
                "auto": True,
            }))
        if transition:
            entries.append(("status_changed", {
                "from": transition.from_status,
                "to": transition.to,
                "reason": transition.reason,
                "auto": transition.auto,
            }))

        results = await asyncio.gather(
            *(self.activities.log(query_id, action, metadata) for action, metadata in entries),
            return_exceptions=True,
        )
        for (action, _), res in zip(entries, results):
            if isinstance(res, Exception):
                log.error("Failed to record %s activity for query %s: %s", action, query_id, res)
