from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey, JSON
from triage.core.base import Base, TimestampedMixin

class QueryActivity(Base, TimestampedMixin):
    query_id: Mapped[str] = mapped_column(ForeignKey("query.id"), index=True)
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)  # None => system
    action: Mapped[str] = mapped_column(String(32))
    # "metadata" is reserved on declarative classes
    details: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
