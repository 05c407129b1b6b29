"""
Pydantic schemas for API request/response validation.
"""
from app.schemas.caption import (
    CaptionCreate,
    CaptionUpdateRequest,
    CaptionResponse,
    CaptionDetailResponse,
    CaptionExportResponse,
    ProcessQueueRequest,
    ProcessQueueResponse,
)
from app.schemas.media import (
    UploadRequest,
    FinalizeUploadRequest,
    MediaAssetResponse,
    UploadResponse,
)
from app.schemas.prompt import (
    PromptTemplateCreate,
    PromptTemplateUpdateRequest,
    PromptTemplateResponse,
)
from app.schemas.task import (
    TaskCreate,
    TaskStatusUpdate,
    TaskResponse,
)
from app.schemas.dataset import (
    RequirementCreate,
    RequirementResponse,
    DatasetCreate,
    DatasetResponse,
)

__all__ = [
    "CaptionCreate",
    "CaptionUpdateRequest",
    "CaptionResponse",
    "CaptionDetailResponse",
    "CaptionExportResponse",
    "ProcessQueueRequest",
    "ProcessQueueResponse",
    "UploadRequest",
    "FinalizeUploadRequest",
    "MediaAssetResponse",
    "UploadResponse",
    "PromptTemplateCreate",
    "PromptTemplateUpdateRequest",
    "PromptTemplateResponse",
    "TaskCreate",
    "TaskStatusUpdate",
    "TaskResponse",
    "RequirementCreate",
    "RequirementResponse",
    "DatasetCreate",
    "DatasetResponse",
]
