"""
Media endpoints: direct-to-storage upload sessions.

Flow:
1. POST /media/request-upload - Create a pending asset + presigned PUT
2. Client PUTs the bytes to storage with the returned url/headers
3. POST /media/finalize - Report size/dimensions/checksum, mark uploaded

The API never handles file bytes. All endpoints require Firebase JWT authentication.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import CurrentUser, get_current_user
from app.config import settings
from app.database import get_db
from app.models.media_asset import MediaStatus
from app.schemas.media import (
    UploadRequest,
    UploadResponse,
    FinalizeUploadRequest,
    MediaAssetResponse,
    PresignedUpload,
)
from app.storage.signer import StorageSigner, get_storage_signer
from app.storage.upload_session import UploadSessionService, UploadFinalization

router = APIRouter()


def get_upload_service(signer: StorageSigner = Depends(get_storage_signer)) -> UploadSessionService:
    return UploadSessionService(signer, expires_in=settings.s3_presign_expiration)


@router.get("", response_model=List[MediaAssetResponse])
async def list_media(
    dataset_id: Optional[int] = Query(None, gt=0),
    requirement_id: Optional[int] = Query(None, gt=0),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """List media assets, newest first."""
    assets = await UploadSessionService.list_assets(db, dataset_id=dataset_id, requirement_id=requirement_id)
    return [MediaAssetResponse.model_validate(asset) for asset in assets]


@router.post("/request-upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def request_upload(
    request: UploadRequest,
    db: AsyncSession = Depends(get_db),
    service: UploadSessionService = Depends(get_upload_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Reserve a storage key and return a presigned PUT.

    The client must send the returned headers (Content-Type) with the PUT.
    """
    slot = await service.request_upload(
        db,
        dataset_id=request.dataset_id,
        file_name=request.file_name,
        size=request.size,
        mime_type=request.mime_type
    )
    return UploadResponse(
        asset=MediaAssetResponse.model_validate(slot.asset),
        upload=PresignedUpload(url=slot.upload.url, headers=slot.upload.headers),
    )


@router.post("/finalize", response_model=MediaAssetResponse)
async def finalize_upload(
    request: FinalizeUploadRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Confirm an upload. Only the fields sent are updated."""
    asset = await UploadSessionService.finalize_upload(
        db,
        request.asset_id,
        UploadFinalization(
            size=request.size,
            width=request.width,
            height=request.height,
            checksum=request.checksum,
            status=MediaStatus(request.status),
        )
    )
    return MediaAssetResponse.model_validate(asset)


@router.delete("/{asset_id}")
async def delete_media(
    asset_id: int,
    db: AsyncSession = Depends(get_db),
    service: UploadSessionService = Depends(get_upload_service),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Delete an asset and its captions; the stored object is removed best-effort."""
    await service.delete_asset(db, asset_id)
    return {"success": True}
