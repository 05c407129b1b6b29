"""
MediaAsset model for files uploaded to object storage.

The bytes live in the bucket; the row only carries metadata.

Lifecycle (linear, never backwards):
1. Client requests an upload slot -> status="pending_upload"
   (storage key and public URL are assigned here, before any bytes exist)
2. Client PUTs the bytes straight to storage with the presigned URL
3. Client finalizes -> status="uploaded" (or "failed")

A pending_upload row that is never finalized stays an orphan; nothing
reaps it.
"""
import enum

from sqlalchemy import Column, Integer, BigInteger, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.models.base import Base, enum_type, utcnow


class MediaStatus(str, enum.Enum):
    """Upload status of a media asset."""
    PENDING_UPLOAD = "pending_upload"  # Presigned URL issued, awaiting bytes
    UPLOADED = "uploaded"              # Client confirmed the upload
    FAILED = "failed"


class MediaAsset(Base):
    """
    Media asset metadata.

    Attributes:
        storage_key: Object key in the bucket, globally unique, assigned once
        public_url: URL derived from the key (override base or bucket addressing)
        width/height: Known only once the client decoded the image
    """
    __tablename__ = "media_assets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    dataset_id = Column(Integer, ForeignKey("datasets.id"), nullable=False, index=True)
    requirement_id = Column(Integer, ForeignKey("requirements.id"), nullable=False, index=True)

    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)

    storage_bucket = Column(String(255), nullable=False)
    storage_key = Column(String(512), nullable=False, unique=True)
    public_url = Column(String, nullable=True)

    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    checksum = Column(String(128), nullable=True)

    status = Column(
        enum_type(MediaStatus, "media_status"),
        nullable=False,
        default=MediaStatus.PENDING_UPLOAD
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    uploaded_at = Column(DateTime(timezone=True), nullable=True)

    dataset = relationship("Dataset")
    captions = relationship("Caption", back_populates="media_asset", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_media_assets_status", "status"),
    )

    def __repr__(self):
        return (
            f"<MediaAsset(id={self.id}, dataset={self.dataset_id}, "
            f"key={self.storage_key}, status={self.status.value})>"
        )
