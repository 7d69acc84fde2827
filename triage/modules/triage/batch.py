import logging
from typing import Iterable
from triage.core.config import settings
from triage.modules.queries.schemas import QueryOut
from triage.modules.triage.schemas import AssignmentStats, BatchFilters, BatchItemResult, BatchResult, TriageResult
from triage.modules.triage.service import TriageService

log = logging.getLogger(__name__)

def matches(query: QueryOut, filters: BatchFilters) -> bool:
    if filters.unassigned_only and query.team_id:
        return False
    if filters.status and query.status != filters.status:
        return False
    if filters.priority and query.priority != filters.priority:
        return False
    if filters.channel and query.channel != filters.channel:
        return False
    return True

class BatchTriageRunner:
    """Drives TriageService over many queries, one at a time.

    A failing query is recorded as an error and the batch moves on.
    """

    def __init__(self, triage: TriageService, queries, teams, result_limit: int | None = None):
        self.triage = triage
        self.queries = queries
        self.teams = teams
        self.result_limit = settings.BATCH_RESULT_LIMIT if result_limit is None else result_limit

    async def assign_query(self, query_id: str) -> TriageResult:
        log.info("Manual assignment triggered for query %s", query_id)
        return await self.triage.process_query(query_id)

    async def reassign_query(self, query_id: str) -> TriageResult:
        log.info("Re-assignment triggered for query %s", query_id)
        return await self.triage.process_query(query_id)

    async def _run(self, targets: Iterable[QueryOut]) -> BatchResult:
        out = BatchResult()
        for query in targets:
            out.processed += 1
            try:
                result = await self.triage.process_query(query.id)
            except Exception as e:
                out.errors += 1
                log.error("Failed to assign query %s: %s", query.id, e, exc_info=True)
                out.results.append(BatchItemResult(query_id=query.id, success=False, error=str(e) or e.__class__.__name__))
                continue
            if result.assignment.team_id:
                out.assigned += 1
                out.results.append(BatchItemResult(query_id=query.id, success=True, team_name=result.assignment.team_name))
            else:
                out.skipped += 1
                out.results.append(BatchItemResult(query_id=query.id, success=False, error="No team assigned"))
        return out

    async def assign_all_unassigned(self) -> BatchResult:
        all_queries = await self.queries.list()
        unassigned = [q for q in all_queries if not q.team_id]
        log.info("Batch assignment: %d queries, %d unassigned", len(all_queries), len(unassigned))
        out = await self._run(unassigned)
        log.info("Batch assignment complete: processed=%d assigned=%d skipped=%d errors=%d",
                 out.processed, out.assigned, out.skipped, out.errors)
        return out

    async def assign_by_filter(self, filters: BatchFilters) -> BatchResult:
        all_queries = await self.queries.list()
        selected = [q for q in all_queries if matches(q, filters)]
        log.info("Filtered assignment %s: %d of %d queries", filters.model_dump(exclude_defaults=True), len(selected), len(all_queries))
        out = await self._run(selected)
        # counters keep the full totals, only the per-item list is capped
        out.results = out.results[: self.result_limit]
        return out

    async def get_assignment_stats(self) -> AssignmentStats:
        queries = await self.queries.list()
        team_names = {t.id: t.name for t in await self.teams.find_all()}
        stats = AssignmentStats(total=len(queries))
        for q in queries:
            name = team_names.get(q.team_id) if q.team_id else None
            if name:
                stats.assigned += 1
                stats.by_team[name] = stats.by_team.get(name, 0) + 1
            else:
                stats.unassigned += 1
        return stats
