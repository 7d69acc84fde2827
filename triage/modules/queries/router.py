from fastapi import APIRouter, Depends
from triage.modules.activity.schemas import ActivityOut
from triage.modules.queries.schemas import QueryAssign, QueryCreate, QueryOut, QueryStatusUpdate
from triage.modules.queries.service import QueryService
from triage.platform.provider_registry import registry

router = APIRouter()

def svc() -> QueryService:
    return QueryService(registry.queries(), registry.activities(), registry.job_queue())

@router.post("", response_model=QueryOut, status_code=201)
async def create_query(payload: QueryCreate, service: QueryService = Depends(svc)):
    return await service.create_query(payload)

@router.get("", response_model=list[QueryOut])
async def list_queries(service: QueryService = Depends(svc)):
    return await service.list_queries()

@router.get("/{query_id}", response_model=QueryOut)
async def get_query(query_id: str, service: QueryService = Depends(svc)):
    return await service.get_query(query_id)

@router.patch("/{query_id}/status", response_model=QueryOut)
async def update_status(query_id: str, payload: QueryStatusUpdate, service: QueryService = Depends(svc)):
    return await service.update_status(query_id, payload.status, payload.actor_id, payload.reason)

@router.post("/{query_id}/assign", response_model=QueryOut)
async def assign_query(query_id: str, payload: QueryAssign, service: QueryService = Depends(svc)):
    return await service.assign_query(query_id, payload.user_id, payload.team_id, payload.actor_id)

@router.get("/{query_id}/activities", response_model=list[ActivityOut])
async def list_activities(query_id: str, service: QueryService = Depends(svc)):
    return await service.list_activities(query_id)
