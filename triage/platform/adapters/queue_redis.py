import asyncio
import json
import logging
import os
import socket
import time
from typing import Any
from redis.asyncio import from_url as redis_from_url
from redis.exceptions import ResponseError
from triage.core.config import settings
from triage.platform.adapters.queue_memory import backoff_seconds
from triage.platform.ports.job_queue import JobHandler, JobQueuePort

log = logging.getLogger("queue.redis")

class RedisJobQueue(JobQueuePort):
    """Redis Streams queue: one stream per queue, one consumer group shared by all workers.

    Entries are acknowledged only after the handler succeeded or the retry was
    re-added, so a crashed worker's jobs stay pending and are reclaimed by
    XAUTOCLAIM once idle long enough. Jobs that exhaust their attempts move to
    ``<stream>.dead``.
    """

    def __init__(self, group: str = "triage-workers", consumer: str | None = None):
        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL not configured")
        self.redis = redis_from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        self.prefix = settings.REDIS_STREAM_PREFIX
        self.group = group
        self.consumer = consumer or f"{socket.gethostname()}-{os.getpid()}"
        self.max_attempts = settings.QUEUE_MAX_ATTEMPTS
        self.backoff_cap_seconds = settings.QUEUE_BACKOFF_MAX_SECONDS
        self._closed = False
        # msg id -> task waiting for a retry entry to come due
        self._scheduled: dict[str, asyncio.Task] = {}

    def _stream(self, queue: str) -> str:
        return f"{self.prefix}.{queue}"

    async def _add(self, stream: str, job_name: str, payload: dict[str, Any], attempts: int = 0, not_before: float = 0.0, **extra) -> str:
        fields = {
            "name": job_name,
            "payload": json.dumps(payload),
            "attempts": str(attempts),
            "not_before": str(not_before),
            **extra,
        }
        return await self.redis.xadd(stream, fields, maxlen=settings.REDIS_STREAM_MAXLEN, approximate=True)

    async def enqueue(self, queue: str, job_name: str, payload: dict[str, Any]) -> str:
        job_id = await self._add(self._stream(queue), job_name, payload)
        log.debug(f"[REDIS QUEUE] XADD stream={self._stream(queue)} job={job_name} id={job_id}")
        return job_id

    async def _ensure_group(self, stream: str) -> None:
        try:
            await self.redis.xgroup_create(stream, self.group, id="0", mkstream=True)
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

    async def _handle(self, stream: str, msg_id: str, fields: dict[str, str], handler: JobHandler) -> None:
        name = fields.get("name", "")
        payload = json.loads(fields.get("payload") or "{}")
        attempts = int(fields.get("attempts") or 0) + 1

        try:
            await handler(name, payload)
        except Exception as e:
            if attempts >= self.max_attempts:
                log.error("Job %s id=%s failed permanently after %d attempts: %s", name, msg_id, attempts, e)
                await self._add(f"{stream}.dead", name, payload, attempts=attempts, last_error=str(e)[:2000])
            else:
                delay = backoff_seconds(attempts, self.backoff_cap_seconds)
                log.warning("Job %s id=%s failed (attempt %d), retrying in %ss: %s", name, msg_id, attempts, delay, e)
                await self._add(stream, name, payload, attempts=attempts, not_before=time.time() + delay)
        await self.redis.xack(stream, self.group, msg_id)

    async def _dispatch(self, stream: str, msg_id: str, fields: dict[str, str], handler: JobHandler) -> None:
        if msg_id in self._scheduled:
            return
        wait = float(fields.get("not_before") or 0) - time.time()
        if wait <= 0:
            await self._handle(stream, msg_id, fields, handler)
            return
        # the entry stays pending (unacked) until handled, so a crash leaves it to XAUTOCLAIM
        self._scheduled[msg_id] = asyncio.create_task(
            self._handle_when_due(stream, msg_id, fields, handler, min(wait, self.backoff_cap_seconds))
        )

    async def _handle_when_due(self, stream: str, msg_id: str, fields: dict[str, str], handler: JobHandler, wait: float) -> None:
        try:
            await asyncio.sleep(wait)
            await self._handle(stream, msg_id, fields, handler)
        except Exception as e:
            # still unacked; XAUTOCLAIM hands it out again
            log.error("Delayed job id=%s could not be settled: %s", msg_id, e, exc_info=True)
        finally:
            self._scheduled.pop(msg_id, None)

    async def consume(self, queue: str, handler: JobHandler) -> None:
        stream = self._stream(queue)
        await self._ensure_group(stream)
        log.info("Consuming %s as %s/%s", stream, self.group, self.consumer)
        while not self._closed:
            # jobs left pending by a dead worker come first
            _, claimed, *_ = await self.redis.xautoclaim(
                stream, self.group, self.consumer, min_idle_time=settings.QUEUE_CLAIM_IDLE_MS, start_id="0-0", count=10
            )
            entries = [(msg_id, fields) for msg_id, fields in claimed if msg_id not in self._scheduled]
            if not entries:
                resp = await self.redis.xreadgroup(self.group, self.consumer, {stream: ">"}, count=10, block=5000)
                entries = resp[0][1] if resp else []
            for msg_id, fields in entries:
                await self._dispatch(stream, msg_id, fields, handler)

    async def close(self) -> None:
        self._closed = True
        for task in self._scheduled.values():
            task.cancel()
        self._scheduled.clear()
        await self.redis.aclose()
