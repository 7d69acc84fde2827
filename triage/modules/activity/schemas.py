from datetime import datetime
from typing import Any, Literal
from pydantic import BaseModel, Field

ActivityAction = Literal[
    "created", "status_changed", "team_assigned", "user_assigned", "priority_updated", "assigned"
]

class ActivityOut(BaseModel):
    id: str
    query_id: str
    actor_id: str | None = None
    action: ActivityAction
    metadata: dict[str, Any] | None = Field(default=None)
    created_at: datetime
