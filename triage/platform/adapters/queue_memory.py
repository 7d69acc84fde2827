import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any
from triage.platform.ports.job_queue import JobHandler, JobQueuePort

log = logging.getLogger("queue.memory")

@dataclass
class Job:
    id: str
    name: str
    payload: dict[str, Any]
    attempts: int = 0
    last_error: str | None = None

@dataclass
class _Queue:
    pending: asyncio.Queue = field(default_factory=asyncio.Queue)
    dead: list[Job] = field(default_factory=list)

def backoff_seconds(attempts: int, cap: float) -> float:
    # 2, 4, 8, ... seconds, capped
    return min(cap, 2 ** min(attempts, 6))

class InMemoryJobQueue(JobQueuePort):
    """Process-local queue for local runs and tests; jobs are lost on restart."""

    def __init__(self, max_attempts: int = 5, backoff_cap_seconds: float = 60):
        self.max_attempts = max_attempts
        self.backoff_cap_seconds = backoff_cap_seconds
        self._queues: dict[str, _Queue] = defaultdict(_Queue)
        self._closed = False
        self._timers: dict[str, asyncio.TimerHandle] = {}

    async def enqueue(self, queue: str, job_name: str, payload: dict[str, Any]) -> str:
        job = Job(id=str(uuid.uuid4()), name=job_name, payload=payload)
        await self._queues[queue].pending.put(job)
        log.debug("Enqueued %s/%s id=%s", queue, job_name, job.id)
        return job.id

    def dead_letters(self, queue: str) -> list[Job]:
        return list(self._queues[queue].dead)

    def pending_count(self, queue: str) -> int:
        return self._queues[queue].pending.qsize()

    async def run_once(self, queue: str, handler: JobHandler) -> bool:
        """Handle one job if one is waiting. Failed jobs are put back (no delay) until dead."""
        q = self._queues[queue]
        try:
            job = q.pending.get_nowait()
        except asyncio.QueueEmpty:
            return False
        await self._handle(queue, job, handler, delay=False)
        return True

    async def drain(self, queue: str, handler: JobHandler) -> int:
        handled = 0
        while await self.run_once(queue, handler):
            handled += 1
        return handled

    async def _handle(self, queue: str, job: Job, handler: JobHandler, delay: bool) -> None:
        q = self._queues[queue]
        job.attempts += 1
        try:
            await handler(job.name, job.payload)
        except Exception as e:
            job.last_error = str(e)
            if job.attempts >= self.max_attempts:
                log.error("Job %s/%s id=%s failed permanently after %d attempts: %s", queue, job.name, job.id, job.attempts, e)
                q.dead.append(job)
                return
            log.warning("Job %s/%s id=%s failed (attempt %d): %s", queue, job.name, job.id, job.attempts, e)
            if not delay:
                await q.pending.put(job)
                return
            # retry later without holding up the rest of the queue
            self._timers[job.id] = asyncio.get_running_loop().call_later(
                backoff_seconds(job.attempts, self.backoff_cap_seconds), self._requeue, q, job,
            )

    async def consume(self, queue: str, handler: JobHandler) -> None:
        q = self._queues[queue]
        log.info("Consuming %s (in-memory)", queue)
        while not self._closed:
            job = await q.pending.get()
            await self._handle(queue, job, handler, delay=True)

    def _requeue(self, q: _Queue, job: Job) -> None:
        self._timers.pop(job.id, None)
        q.pending.put_nowait(job)

    def delayed_count(self) -> int:
        return len(self._timers)

    async def close(self) -> None:
        self._closed = True
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
