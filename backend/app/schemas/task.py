"""
Pydantic schemas for automation task endpoints.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime
from app.models.automation_task import TaskType, TaskStatus
from app.schemas.dataset import DatasetResponse


class TaskCreate(BaseModel):
    """Schema for creating an automation task."""
    dataset_id: int = Field(..., gt=0)
    type: TaskType
    status: TaskStatus = TaskStatus.QUEUED
    progress: int = Field(0, ge=0, le=100)
    assigned_to: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TaskStatusUpdate(BaseModel):
    status: TaskStatus
    progress: Optional[int] = Field(None, ge=0, le=100, description="Defaults to 100 for succeeded, else 0")
    failure_reason: Optional[str] = None


class TaskResponse(BaseModel):
    """Schema for automation task response."""
    id: int
    dataset_id: int
    type: TaskType
    status: TaskStatus
    progress: int
    assigned_to: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="task_metadata")  # Model attribute is task_metadata
    failure_reason: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


class TaskDetailResponse(TaskResponse):
    dataset: Optional[DatasetResponse] = None
