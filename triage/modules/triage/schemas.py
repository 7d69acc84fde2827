from typing import Literal
from pydantic import BaseModel, Field
from triage.modules.queries.schemas import Channel, Priority, QueryStatus

UrgencyBucket = Literal["low", "medium", "high", "critical"]

class PriorityResult(BaseModel):
    priority: Priority
    urgency: UrgencyBucket
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)

class AssignmentResult(BaseModel):
    team_id: str | None = None
    team_name: str | None = None
    user_id: str | None = None
    user_name: str | None = None
    reason: str

    @property
    def is_assigned(self) -> bool:
        return bool(self.team_id or self.user_id)

class StatusTransition(BaseModel):
    from_status: QueryStatus = Field(..., alias="from")
    to: QueryStatus
    reason: str
    auto: bool

    model_config = {"populate_by_name": True}

class TriageResult(BaseModel):
    query_id: str
    priority: Priority
    status: QueryStatus
    assignment: AssignmentResult
    status_transition: StatusTransition | None = None

class BatchItemResult(BaseModel):
    query_id: str
    success: bool
    team_name: str | None = None
    error: str | None = None

class BatchResult(BaseModel):
    processed: int = 0
    assigned: int = 0
    skipped: int = 0
    errors: int = 0
    results: list[BatchItemResult] = Field(default_factory=list)

class BatchFilters(BaseModel):
    status: QueryStatus | None = None
    priority: Priority | None = None
    channel: Channel | None = None
    unassigned_only: bool = False

class AssignmentStats(BaseModel):
    total: int = 0
    assigned: int = 0
    unassigned: int = 0
    by_team: dict[str, int] = Field(default_factory=dict)
    errors: int = 0
