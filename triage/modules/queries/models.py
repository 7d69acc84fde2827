from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, JSON
from triage.core.base import Base, TimestampedMixin

class Query(Base, TimestampedMixin):
    channel: Mapped[str] = mapped_column(String(16))  # email | social | chat | community
    subject: Mapped[str] = mapped_column(Text)
    message: Mapped[str] = mapped_column(Text)
    customer_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # [{"name": ..., "confidence": ...}] in display order
    tags: Mapped[list] = mapped_column(JSON, default=list)
    priority: Mapped[str] = mapped_column(String(8), default="medium")  # low | medium | high | urgent
    status: Mapped[str] = mapped_column(String(16), default="new")  # new | in_progress | escalated | resolved | closed

    team_id: Mapped[str | None] = mapped_column(ForeignKey("team.id"), nullable=True)
    assignee_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    ai_insights: Mapped[dict | None] = mapped_column(JSON, nullable=True)
