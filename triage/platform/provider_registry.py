from triage.core.config import settings
from triage.platform.failover import FailoverRepository, StoreCircuit
from triage.platform.memory_store import MemoryStore
from triage.platform.ports.job_queue import JobQueuePort
from triage.platform.adapters.queue_memory import InMemoryJobQueue
from triage.platform.ports.classifier import ClassifierPort
from triage.platform.adapters.classifier_heuristic import HeuristicClassifier
from triage.modules.queries.repository import QueryRepository, InMemoryQueryRepository
from triage.modules.teams.repository import TeamRepository, InMemoryTeamRepository
from triage.modules.activity.repository import ActivityRepository, InMemoryActivityRepository

class ProviderRegistry:
    _circuit: StoreCircuit | None = None
    _memory: MemoryStore | None = None
    _queries: FailoverRepository | None = None
    _teams: FailoverRepository | None = None
    _activities: FailoverRepository | None = None
    _job_queue: JobQueuePort | None = None
    _classifier: ClassifierPort | None = None
    _triage = None
    _batch = None

    @classmethod
    def circuit(cls) -> StoreCircuit:
        if cls._circuit is None:
            cls._circuit = StoreCircuit(start_open=settings.STORE_PROVIDER == "memory")
        return cls._circuit

    @classmethod
    def memory_store(cls) -> MemoryStore:
        if cls._memory is None:
            cls._memory = MemoryStore()
        return cls._memory

    @classmethod
    def _session_factory(cls):
        if settings.STORE_PROVIDER == "memory":
            return None
        from triage.core.db import SessionLocal
        return SessionLocal

    @classmethod
    def queries(cls) -> FailoverRepository:
        if cls._queries is None:
            cls._queries = FailoverRepository(
                "queries", QueryRepository(cls._session_factory()), InMemoryQueryRepository(cls.memory_store()), cls.circuit()
            )
        return cls._queries

    @classmethod
    def teams(cls) -> FailoverRepository:
        if cls._teams is None:
            cls._teams = FailoverRepository(
                "teams", TeamRepository(cls._session_factory()), InMemoryTeamRepository(cls.memory_store()), cls.circuit()
            )
        return cls._teams

    @classmethod
    def activities(cls) -> FailoverRepository:
        if cls._activities is None:
            cls._activities = FailoverRepository(
                "activities", ActivityRepository(cls._session_factory()), InMemoryActivityRepository(cls.memory_store()), cls.circuit()
            )
        return cls._activities

    @classmethod
    def job_queue(cls) -> JobQueuePort:
        if cls._job_queue is None:
            if settings.QUEUE_PROVIDER == "redis":
                from triage.platform.adapters.queue_redis import RedisJobQueue
                cls._job_queue = RedisJobQueue()
            else:
                cls._job_queue = InMemoryJobQueue(settings.QUEUE_MAX_ATTEMPTS, settings.QUEUE_BACKOFF_MAX_SECONDS)
        return cls._job_queue

    @classmethod
    def classifier(cls) -> ClassifierPort:
        if cls._classifier is None:
            if settings.CLASSIFIER_PROVIDER == "openai":
                from triage.platform.adapters.classifier_openai import OpenAIClassifier
                cls._classifier = OpenAIClassifier(settings.OPENAI_API_KEY or "", settings.OPENAI_MODEL, settings.OPENAI_TIMEOUT_SECONDS)
            else:
                cls._classifier = HeuristicClassifier()
        return cls._classifier

    @classmethod
    def triage(cls):
        if cls._triage is None:
            from triage.modules.triage.service import TriageService
            cls._triage = TriageService(cls.queries(), cls.teams(), cls.activities())
        return cls._triage

    @classmethod
    def batch(cls):
        if cls._batch is None:
            from triage.modules.triage.batch import BatchTriageRunner
            cls._batch = BatchTriageRunner(cls.triage(), cls.queries(), cls.teams())
        return cls._batch

    @classmethod
    def reset(cls) -> None:
        cls._circuit = cls._memory = None
        cls._queries = cls._teams = cls._activities = None
        cls._job_queue = cls._classifier = None
        cls._triage = cls._batch = None

registry = ProviderRegistry()
