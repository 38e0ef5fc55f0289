from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Integer, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column
from pipeline_orchestrator.db.session import Base


class OrchestrationJob(Base):
    __tablename__ = "orchestration_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    strategy: Mapped[str] = mapped_column(String(20), nullable=False)
    project_name: Mapped[str] = mapped_column(Text, nullable=False)
    definition_name: Mapped[str] = mapped_column(Text, nullable=False)

    # OrchestrationRequest as submitted
    request: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    status: Mapped[str] = mapped_column(String(30), default="QUEUED", nullable=False)
    run_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    run_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    progress: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
