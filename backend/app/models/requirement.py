"""
Requirement model: the business ask that justifies a dataset.
"""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON

from app.models.base import Base, enum_type, utcnow


class RequirementStatus(str, enum.Enum):
    """Kanban column of a requirement."""
    INTAKE = "intake"
    DESIGN = "design"
    SOURCING = "sourcing"
    LABELING = "labeling"
    QA = "qa"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class RequirementPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Requirement(Base):
    __tablename__ = "requirements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    owner = Column(String(255), nullable=False)
    team = Column(String(255), nullable=False)
    status = Column(enum_type(RequirementStatus, "requirement_status"), nullable=False, default=RequirementStatus.INTAKE)
    priority = Column(enum_type(RequirementPriority, "requirement_priority"), nullable=False)
    expected_images = Column(Integer, nullable=False, default=0)
    ai_coverage_target = Column(Integer, nullable=False, default=80)
    tag_hints = Column(JSON, nullable=False, default=list)
    brief_url = Column(String, nullable=True)
    risk_level = Column(String(50), nullable=False, default="normal")
    due_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Requirement(id={self.id}, title={self.title!r}, status={self.status})>"
