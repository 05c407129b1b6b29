"""
AutomationTask model tracking bulk work (ingest/caption/tag/qa/distribution)
against a dataset.
"""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.models.base import Base, enum_type, utcnow


class TaskType(str, enum.Enum):
    INGEST = "ingest"
    CAPTION = "caption"
    TAG = "tag"
    QA = "qa"
    DISTRIBUTION = "distribution"


class TaskStatus(str, enum.Enum):
    QUEUED = "queued"
    RUNNING = "running"
    PAUSED = "paused"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    BLOCKED = "blocked"


# completed_at is set iff status is one of these
FINISHED_TASK_STATUSES = (TaskStatus.SUCCEEDED, TaskStatus.FAILED)


class AutomationTask(Base):
    __tablename__ = "automation_tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    dataset_id = Column(Integer, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(enum_type(TaskType, "task_type"), nullable=False)
    status = Column(enum_type(TaskStatus, "task_status"), nullable=False, default=TaskStatus.QUEUED)
    progress = Column(Integer, nullable=False, default=0)  # 0-100
    assigned_to = Column(String(255), nullable=True)
    task_metadata = Column("metadata", JSON, nullable=False, default=dict)
    failure_reason = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    dataset = relationship("Dataset", back_populates="tasks")

    def __repr__(self):
        return f"<AutomationTask(id={self.id}, type={self.type}, status={self.status})>"
