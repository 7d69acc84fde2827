from fastapi import APIRouter, Depends
from triage.modules.triage.batch import BatchTriageRunner
from triage.modules.triage.schemas import AssignmentStats, BatchFilters, BatchResult, TriageResult
from triage.platform.provider_registry import registry

router = APIRouter()

def runner() -> BatchTriageRunner:
    return registry.batch()

@router.post("/assign/{query_id}", response_model=TriageResult)
async def assign_query(query_id: str, batch: BatchTriageRunner = Depends(runner)):
    return await batch.assign_query(query_id)

@router.post("/reassign/{query_id}", response_model=TriageResult)
async def reassign_query(query_id: str, batch: BatchTriageRunner = Depends(runner)):
    return await batch.reassign_query(query_id)

@router.post("/assign-all", response_model=BatchResult)
async def assign_all(batch: BatchTriageRunner = Depends(runner)):
    return await batch.assign_all_unassigned()

@router.post("/assign-by-filter", response_model=BatchResult)
async def assign_by_filter(filters: BatchFilters, batch: BatchTriageRunner = Depends(runner)):
    return await batch.assign_by_filter(filters)

@router.get("/stats", response_model=AssignmentStats)
async def stats(batch: BatchTriageRunner = Depends(runner)):
    return await batch.get_assignment_stats()
