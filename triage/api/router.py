from fastapi import APIRouter
from triage.modules.queries.router import router as queries_router
from triage.modules.triage.router import router as assignment_router
from triage.platform.provider_registry import registry

api_router = APIRouter()
api_router.include_router(queries_router, prefix="/queries", tags=["queries"])
api_router.include_router(assignment_router, prefix="/assignment", tags=["assignment"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "store": registry.circuit().backend}
