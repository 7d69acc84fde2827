import asyncio
import logging
import time
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from triage.api.router import api_router
from triage.bootstrap import bootstrap
from triage.core.config import settings
from triage.core.errors import NotFound
from triage.core.logging import request_id_ctx, setup_logging
from triage.platform.provider_registry import registry

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id_ctx.set(request.headers.get("x-request-id", "-"))
    start_time = time.time()

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    logger.info(
        f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {process_time:.2f}ms"
    )
    return response

@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"error": "NotFound", "message": str(exc)})

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": exc.__class__.__name__, "message": str(exc) or "An internal server error occurred."},
    )

app.include_router(api_router, prefix=settings.API_PREFIX)

@app.on_event("startup")
async def on_startup():
    await bootstrap(with_users=settings.ENV == "local")
    if settings.QUEUE_PROVIDER == "memory":
        # in-memory jobs only exist in this process, so this process consumes them
        from triage.modules.jobs.worker import build_handlers, QUEUES
        handlers = build_handlers()
        jobs = registry.job_queue()
        app.state.worker_tasks = [asyncio.create_task(jobs.consume(q, handlers.dispatch)) for q in QUEUES]

@app.on_event("shutdown")
async def on_shutdown():
    for task in getattr(app.state, "worker_tasks", []):
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await registry.job_queue().close()
