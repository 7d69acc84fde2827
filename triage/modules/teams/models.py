from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, Index, func
from triage.core.base import Base, TimestampedMixin

class Team(Base, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(120))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # names are unique regardless of case; the resolver relies on it for create-or-fetch
    __table_args__ = (Index("team_name_lower_uq", func.lower(name), unique=True),)

class User(Base, TimestampedMixin):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(120))
    email: Mapped[str] = mapped_column(String(255), unique=True)
    role: Mapped[str] = mapped_column(String(16), default="agent")  # agent | manager | admin
    team_id: Mapped[str | None] = mapped_column(ForeignKey("team.id"), nullable=True)
