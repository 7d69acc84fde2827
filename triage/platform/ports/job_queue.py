from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

JobHandler = Callable[[str, dict[str, Any]], Awaitable[None]]

# queue name -> job name carried on it
CLASSIFICATION_QUEUE = "classification"
PRIORITY_QUEUE = "priority-scoring"
ROUTING_QUEUE = "routing"

@runtime_checkable
class JobQueuePort(Protocol):
    """At-least-once job delivery with per-job retry.

    A handler that raises is retried until the queue's attempt budget is spent.
    """
    async def enqueue(self, queue: str, job_name: str, payload: dict[str, Any]) -> str: ...

    async def consume(self, queue: str, handler: JobHandler) -> None: ...

    async def close(self) -> None: ...
