"""
Pydantic schemas for requirement and dataset endpoints.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from app.models.requirement import RequirementStatus, RequirementPriority


class RequirementCreate(BaseModel):
    """Schema for creating a requirement."""
    title: str = Field(..., min_length=2)
    description: str = Field(..., min_length=4)
    owner: str = Field(..., min_length=1)
    team: str = Field(..., min_length=1)
    priority: RequirementPriority
    status: Optional[RequirementStatus] = Field(None, description="Defaults to intake")
    expected_images: int = Field(0, ge=0)
    ai_coverage_target: int = Field(80, ge=0, le=100)
    tag_hints: List[str] = Field(default_factory=list)
    brief_url: Optional[str] = None
    risk_level: str = "normal"
    due_date: Optional[datetime] = None


class RequirementStatusUpdate(BaseModel):
    status: RequirementStatus


class RequirementResponse(BaseModel):
    """Schema for requirement response."""
    id: int
    title: str
    description: str
    owner: str
    team: str
    status: RequirementStatus
    priority: RequirementPriority
    expected_images: int
    ai_coverage_target: int
    tag_hints: List[str] = Field(default_factory=list)
    brief_url: Optional[str] = None
    risk_level: str
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DatasetCreate(BaseModel):
    """Schema for creating a dataset."""
    requirement_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=2)
    storage_bucket: str = Field(..., min_length=2)
    image_count: int = Field(0, ge=0)
    processed_count: int = Field(0, ge=0)
    pending_count: Optional[int] = Field(None, ge=0, description="Derived from image/processed counts when omitted")
    ai_caption_coverage: int = Field(0, ge=0, le=100)
    auto_tag_coverage: int = Field(0, ge=0, le=100)
    review_coverage: int = Field(0, ge=0, le=100)
    focus_tags: List[str] = Field(default_factory=list)
    last_run_at: Optional[datetime] = None


class DatasetMetricsUpdate(BaseModel):
    image_count: int = Field(..., ge=0)
    processed_count: int = Field(..., ge=0)
    pending_count: Optional[int] = Field(None, ge=0)
    ai_caption_coverage: int = Field(..., ge=0, le=100)
    auto_tag_coverage: int = Field(..., ge=0, le=100)
    review_coverage: int = Field(..., ge=0, le=100)


class DatasetResponse(BaseModel):
    """Schema for dataset response."""
    id: int
    requirement_id: int
    name: str
    storage_bucket: str
    image_count: int
    processed_count: int
    pending_count: int
    ai_caption_coverage: int
    auto_tag_coverage: int
    review_coverage: int
    focus_tags: List[str] = Field(default_factory=list)
    last_run_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DatasetDetailResponse(DatasetResponse):
    requirement: Optional[RequirementResponse] = None
