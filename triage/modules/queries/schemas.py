from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

Channel = Literal["email", "social", "chat", "community"]
Priority = Literal["low", "medium", "high", "urgent"]
QueryStatus = Literal["new", "in_progress", "escalated", "resolved", "closed"]

# ---- Tags / classifier output ----

class Tag(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

class ClassifierInsights(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str | None = None
    sentiment: str | None = None
    urgency: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

# ---- Queries ----

class QueryCreate(BaseModel):
    channel: Channel
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    customer_name: str | None = None
    customer_email: str | None = None
    tags: list[Tag] = Field(default_factory=list)
    priority: Priority = "medium"
    status: QueryStatus = "new"

class QueryStatusUpdate(BaseModel):
    status: QueryStatus
    actor_id: str | None = None
    reason: str | None = None

class QueryAssign(BaseModel):
    user_id: str | None = None
    team_id: str | None = None
    actor_id: str | None = None

class QueryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    channel: Channel
    subject: str
    message: str
    customer_name: str | None = None
    customer_email: str | None = None
    tags: list[Tag] = Field(default_factory=list)
    priority: Priority = "medium"
    status: QueryStatus = "new"
    team_id: str | None = None
    assignee_id: str | None = None
    classifier_insights: ClassifierInsights | None = None
    created_at: datetime
    updated_at: datetime
