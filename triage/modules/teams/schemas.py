from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict

UserRole = Literal["agent", "manager", "admin"]

class TeamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    created_at: datetime

class UserCreate(BaseModel):
    name: str
    email: str
    role: UserRole = "agent"
    team_id: str | None = None

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    team_id: str | None = None
    created_at: datetime
