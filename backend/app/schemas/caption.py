"""
Pydantic schemas for caption endpoints.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from app.models.caption import CaptionStatus
from app.schemas.media import MediaAssetResponse
from app.schemas.prompt import PromptTemplateResponse


class CaptionCreate(BaseModel):
    """Schema for creating a caption by hand."""
    media_asset_id: int = Field(..., gt=0)
    prompt_template_id: Optional[int] = Field(None, gt=0)
    manual_caption: Optional[str] = Field(None, description="Manual text; makes the caption completed")


class CaptionUpdateRequest(BaseModel):
    """Partial reviewer edit. Omitted fields are left untouched."""
    manual_caption: Optional[str] = None
    final_caption: Optional[str] = None
    status: Optional[CaptionStatus] = None
    rejection_reason: Optional[str] = None


class CaptionApproveRequest(BaseModel):
    approved_by: Optional[str] = Field(None, description="Defaults to the caller's identity")


class CaptionRejectRequest(BaseModel):
    reason: Optional[str] = None


class CaptionBatchApproveRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)
    approved_by: Optional[str] = None


class CaptionBatchRejectRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)
    reason: Optional[str] = None


class TriggerCaptioningRequest(BaseModel):
    """Queue AI captioning for caption-less assets of a dataset."""
    dataset_id: int = Field(..., gt=0)
    prompt_template_id: Optional[int] = Field(None, gt=0, description="Defaults to the default template")
    media_asset_ids: Optional[List[int]] = Field(None, description="Restrict to these assets")


class TriggerCaptioningResponse(BaseModel):
    queued: int
    caption_ids: List[int] = []


class RegenerateRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)
    prompt_template_id: Optional[int] = Field(None, gt=0)


class RegenerateResponse(BaseModel):
    regenerating: int


class BatchApproveResponse(BaseModel):
    approved: int


class BatchRejectResponse(BaseModel):
    rejected: int


class ProcessQueueRequest(BaseModel):
    """Batch worker bounds."""
    limit: int = Field(10, ge=1, le=50)
    concurrency: int = Field(3, ge=1, le=10)


class CaptionJobError(BaseModel):
    caption_id: int
    error: str


class ProcessQueueResponse(BaseModel):
    processed: int
    succeeded: int
    failed: int
    errors: List[CaptionJobError] = []


class CaptionResponse(BaseModel):
    """Schema for caption response."""
    id: int
    media_asset_id: int
    prompt_template_id: Optional[int] = None
    ai_caption: Optional[str] = None
    manual_caption: Optional[str] = None
    final_caption: Optional[str] = None
    status: CaptionStatus
    model: Optional[str] = None
    confidence: Optional[int] = None
    tokens_used: Optional[int] = None
    rejection_reason: Optional[str] = None
    approved_by: Optional[str] = None
    generated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CaptionDetailResponse(CaptionResponse):
    """Caption with its media asset and prompt template."""
    media_asset: Optional[MediaAssetResponse] = None
    prompt_template: Optional[PromptTemplateResponse] = None


class CaptionExportResponse(BaseModel):
    """
    Export payload.
    json: data is a list of rows; csv: data is the document; txt: files.
    """
    format: Literal["json", "csv", "txt"]
    data: Optional[Any] = None
    files: Optional[List[Dict[str, str]]] = None
