"""
Caption model: an AI- or human-authored description of one media asset.

Status is a small state machine (see app.services.caption_service):

    (new) -> pending | completed (manual text at creation)
    any -> processing            (triggered / regenerate, clears AI fields)
    processing -> completed      (worker success)
    processing -> rejected       (worker failure, reason = provider error)
    any -> approved | rejected   (reviewer)

approved/rejected are soft-terminal: regenerate moves them back to processing.
"""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.models.base import Base, enum_type, utcnow


def pick_caption(final_caption, manual_caption, ai_caption) -> str:
    """First caption that is set; an empty string set by a reviewer still wins."""
    for text in (final_caption, manual_caption, ai_caption):
        if text is not None:
            return text
    return ""


class CaptionStatus(str, enum.Enum):
    """Caption review status."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    APPROVED = "approved"
    REJECTED = "rejected"


class Caption(Base):
    __tablename__ = "captions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    media_asset_id = Column(Integer, ForeignKey("media_assets.id", ondelete="CASCADE"), nullable=False, index=True)
    prompt_template_id = Column(Integer, ForeignKey("prompt_templates.id", ondelete="SET NULL"), nullable=True)

    ai_caption = Column(Text, nullable=True)
    manual_caption = Column(Text, nullable=True)
    final_caption = Column(Text, nullable=True)  # Used for export

    status = Column(enum_type(CaptionStatus, "caption_status"), nullable=False, default=CaptionStatus.PENDING)

    model = Column(String(100), nullable=True)
    confidence = Column(Integer, nullable=True)  # 0-100 heuristic
    tokens_used = Column(Integer, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    approved_by = Column(String(255), nullable=True)

    generated_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    media_asset = relationship("MediaAsset", back_populates="captions")
    prompt_template = relationship("PromptTemplate")

    __table_args__ = (
        Index("ix_captions_status", "status"),
    )

    @property
    def best_caption(self) -> str:
        """Caption text shown everywhere: final > manual > AI > ''."""
        return pick_caption(self.final_caption, self.manual_caption, self.ai_caption)

    def __repr__(self):
        return f"<Caption(id={self.id}, media_asset_id={self.media_asset_id}, status={self.status})>"
