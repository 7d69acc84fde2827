import asyncio
import logging
from triage.bootstrap import bootstrap
from triage.core.logging import setup_logging
from triage.modules.jobs.handlers import JobHandlers
from triage.platform.ports.job_queue import CLASSIFICATION_QUEUE, PRIORITY_QUEUE, ROUTING_QUEUE
from triage.platform.provider_registry import registry

log = logging.getLogger("worker")

QUEUES = (CLASSIFICATION_QUEUE, PRIORITY_QUEUE, ROUTING_QUEUE)

def build_handlers() -> JobHandlers:
    return JobHandlers(registry.queries(), registry.classifier(), registry.triage())

async def run_workers(queues=QUEUES):
    await bootstrap()
    handlers = build_handlers()
    jobs = registry.job_queue()
    log.info("Workers started for %s with queue=%s", ", ".join(queues), jobs.__class__.__name__)
    try:
        await asyncio.gather(*(jobs.consume(q, handlers.dispatch) for q in queues))
    except asyncio.CancelledError:
        log.info("Workers cancelled; shutting down")
        raise
    finally:
        await jobs.close()

def main():
    setup_logging()
    asyncio.run(run_workers())

if __name__ == "__main__":
    main()
