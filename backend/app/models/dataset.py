"""
Dataset model: a named collection of media assets tied to one requirement.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.models.base import Base, utcnow


class Dataset(Base):
    __tablename__ = "datasets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    requirement_id = Column(Integer, ForeignKey("requirements.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    storage_bucket = Column(String(255), nullable=False)

    # Coverage metrics, reported by automation (percentages are 0-100)
    image_count = Column(Integer, nullable=False, default=0)
    processed_count = Column(Integer, nullable=False, default=0)
    pending_count = Column(Integer, nullable=False, default=0)
    ai_caption_coverage = Column(Integer, nullable=False, default=0)
    auto_tag_coverage = Column(Integer, nullable=False, default=0)
    review_coverage = Column(Integer, nullable=False, default=0)
    focus_tags = Column(JSON, nullable=False, default=list)
    last_run_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    requirement = relationship("Requirement")
    # Tasks belong exclusively to their dataset
    tasks = relationship("AutomationTask", back_populates="dataset", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Dataset(id={self.id}, name={self.name!r}, requirement_id={self.requirement_id})>"
