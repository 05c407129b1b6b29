"""
Caption endpoints: review, captioning triggers, export and the batch queue.
All endpoints require Firebase JWT authentication.
"""
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai import VisionCaptionProvider, get_caption_provider
from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_db
from app.models.caption import CaptionStatus
from app.schemas.caption import (
    CaptionCreate,
    CaptionUpdateRequest,
    CaptionApproveRequest,
    CaptionRejectRequest,
    CaptionBatchApproveRequest,
    CaptionBatchRejectRequest,
    CaptionResponse,
    CaptionDetailResponse,
    CaptionExportResponse,
    TriggerCaptioningRequest,
    TriggerCaptioningResponse,
    RegenerateRequest,
    RegenerateResponse,
    BatchApproveResponse,
    BatchRejectResponse,
    ProcessQueueRequest,
    ProcessQueueResponse,
)
from app.services.caption_export import export_captions
from app.services.caption_service import CaptionService, CaptionUpdate
from app.services.caption_worker import process_pending_captions

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[CaptionDetailResponse])
async def list_captions(
    media_asset_id: Optional[int] = Query(None, gt=0),
    dataset_id: Optional[int] = Query(None, gt=0),
    status: Optional[CaptionStatus] = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """List captions newest first, each with its media asset and prompt template."""
    captions = await CaptionService.list_captions(
        db,
        media_asset_id=media_asset_id,
        dataset_id=dataset_id,
        status=status,
        limit=limit,
        offset=offset
    )
    return [CaptionDetailResponse.model_validate(caption) for caption in captions]


@router.get("/export", response_model=CaptionExportResponse)
async def export(
    dataset_id: Optional[int] = Query(None, gt=0),
    format: Literal["json", "csv", "txt"] = "json",
    status_filter: Optional[CaptionStatus] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Export captions as JSON rows, a CSV document, or one TXT file per asset."""
    return await export_captions(db, dataset_id=dataset_id, export_format=format, status_filter=status_filter)


@router.get("/{caption_id}", response_model=CaptionDetailResponse)
async def get_caption(
    caption_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    caption = await CaptionService.get_caption(db, caption_id)
    return CaptionDetailResponse.model_validate(caption)


@router.post("", response_model=CaptionResponse, status_code=201)
async def create_caption(
    request: CaptionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create a caption; manual text makes it completed immediately."""
    caption = await CaptionService.create_caption(
        db,
        media_asset_id=request.media_asset_id,
        prompt_template_id=request.prompt_template_id,
        manual_caption=request.manual_caption
    )
    return CaptionResponse.model_validate(caption)


@router.patch("/{caption_id}", response_model=CaptionResponse)
async def update_caption(
    caption_id: int,
    request: CaptionUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Edit caption text; status only changes when sent explicitly."""
    caption = await CaptionService.update_caption(
        db,
        caption_id,
        CaptionUpdate(
            manual_caption=request.manual_caption,
            final_caption=request.final_caption,
            status=request.status,
            rejection_reason=request.rejection_reason,
        )
    )
    return CaptionResponse.model_validate(caption)


@router.post("/{caption_id}/approve", response_model=CaptionResponse)
async def approve_caption(
    caption_id: int,
    request: Optional[CaptionApproveRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Approve a caption. approved_by defaults to the caller's identity."""
    caption = await CaptionService.approve_caption(
        db,
        caption_id,
        approved_by=request.approved_by if request else None,
        session_identity=current_user.identity
    )
    return CaptionResponse.model_validate(caption)


@router.post("/{caption_id}/reject", response_model=CaptionResponse)
async def reject_caption(
    caption_id: int,
    request: Optional[CaptionRejectRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    caption = await CaptionService.reject_caption(
        db,
        caption_id,
        reason=request.reason if request else None
    )
    return CaptionResponse.model_validate(caption)


@router.post("/batch-approve", response_model=BatchApproveResponse)
async def batch_approve(
    request: CaptionBatchApproveRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    approved = await CaptionService.batch_approve(
        db,
        request.ids,
        approved_by=request.approved_by,
        session_identity=current_user.identity
    )
    return BatchApproveResponse(approved=approved)


@router.post("/batch-reject", response_model=BatchRejectResponse)
async def batch_reject(
    request: CaptionBatchRejectRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    rejected = await CaptionService.batch_reject(db, request.ids, reason=request.reason)
    return BatchRejectResponse(rejected=rejected)


@router.delete("/{caption_id}")
async def delete_caption(
    caption_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Permanently delete a caption."""
    await CaptionService.delete_caption(db, caption_id)
    return {"success": True}


@router.post("/trigger", response_model=TriggerCaptioningResponse)
async def trigger_captioning(
    request: TriggerCaptioningRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Queue AI captioning for every asset of the dataset without a caption.
    Re-running it never queues an asset twice.
    """
    result = await CaptionService.trigger_captioning(
        db,
        dataset_id=request.dataset_id,
        prompt_template_id=request.prompt_template_id,
        media_asset_ids=request.media_asset_ids
    )
    return TriggerCaptioningResponse(**result)


@router.post("/regenerate", response_model=RegenerateResponse)
async def regenerate(
    request: RegenerateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Send captions back to processing with their AI output cleared."""
    count = await CaptionService.regenerate(db, request.ids, prompt_template_id=request.prompt_template_id)
    return RegenerateResponse(regenerating=count)


@router.post("/process-queue", response_model=ProcessQueueResponse)
async def process_queue(
    request: Optional[ProcessQueueRequest] = None,
    db: AsyncSession = Depends(get_db),
    provider: VisionCaptionProvider = Depends(get_caption_provider),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Run one batch of the caption worker now.

    Partial failure is reported per caption, never as an error response.
    """
    request = request or ProcessQueueRequest()
    batch = await process_pending_captions(
        db,
        provider,
        limit=request.limit,
        concurrency=request.concurrency
    )
    return ProcessQueueResponse(**batch.to_dict())
