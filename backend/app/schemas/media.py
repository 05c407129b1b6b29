"""
Pydantic schemas for media upload endpoints.
"""
from pydantic import BaseModel, Field
from typing import Dict, Literal, Optional
from datetime import datetime
from app.models.media_asset import MediaStatus


class UploadRequest(BaseModel):
    """Ask for an upload slot in a dataset."""
    dataset_id: int = Field(..., gt=0)
    file_name: str = Field(..., min_length=1)
    mime_type: Optional[str] = Field(None, description="Defaults to application/octet-stream")
    size: int = Field(..., ge=0, description="File size in bytes")


class FinalizeUploadRequest(BaseModel):
    """Completion report after the PUT. Omitted fields are left untouched."""
    asset_id: int = Field(..., gt=0)
    size: Optional[int] = Field(None, ge=0)
    width: Optional[int] = Field(None, ge=0)
    height: Optional[int] = Field(None, ge=0)
    checksum: Optional[str] = None
    status: Literal["uploaded", "failed"] = Field("uploaded", description="An upload never returns to pending_upload")


class MediaAssetResponse(BaseModel):
    """Schema for media asset response."""
    id: int
    dataset_id: int
    requirement_id: int
    original_name: str
    mime_type: str
    size: int
    storage_bucket: str
    storage_key: str
    public_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    checksum: Optional[str] = None
    status: MediaStatus
    created_at: datetime
    updated_at: datetime
    uploaded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PresignedUpload(BaseModel):
    """How the client must PUT the bytes."""
    url: str
    headers: Dict[str, str] = {}


class UploadResponse(BaseModel):
    asset: MediaAssetResponse
    upload: PresignedUpload
