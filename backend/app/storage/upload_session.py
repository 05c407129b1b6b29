"""
Upload session protocol.

Handles the three-step direct-to-storage upload:

1. Request: client asks for a slot (dataset, file name, mime type, size).
   Backend assigns the storage key + public URL, inserts a MediaAsset in
   "pending_upload" and returns a presigned PUT.
2. Transfer: client PUTs the bytes to the bucket using the exact URL and
   headers returned. The API is not in the data path.
3. Finalize: client reports completion; backend patches only the fields
   it was given and stamps uploaded_at. Status only moves forward:
   pending_upload -> uploaded | failed, uploaded -> failed; failed is final.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import InvalidStateError, NotFoundError
from app.models.base import utcnow
from app.models.dataset import Dataset
from app.models.media_asset import MediaAsset, MediaStatus
from app.storage.signer import StorageSigner, PresignedRequest, build_storage_key
from app.utils.logging import log_upload_requested, log_upload_finalized
from app.utils.metrics import uploads_requested_total, uploads_finalized_total

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class UploadSlot:
    """Result of an upload request: the new asset and how to PUT its bytes."""
    asset: MediaAsset
    upload: PresignedRequest


@dataclass
class UploadFinalization:
    """
    Partial update reported by the client after the PUT.

    Fields left as None are not touched on the asset.
    """
    size: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    checksum: Optional[str] = None
    status: MediaStatus = MediaStatus.UPLOADED


class UploadSessionService:
    """
    Service for direct-upload sessions.

    Responsibilities:
    - Resolve the dataset (and its requirement) for a new upload
    - Assign storage key and public URL before any bytes exist
    - Issue the presigned PUT
    - Apply the client's finalize report
    """

    def __init__(self, signer: StorageSigner, expires_in: Optional[int] = None):
        self.signer = signer
        self.expires_in = expires_in

    async def request_upload(
        self,
        db: AsyncSession,
        dataset_id: int,
        file_name: str,
        size: int,
        mime_type: Optional[str] = None,
    ) -> UploadSlot:
        """
        Create a pending asset and a presigned upload URL.

        Raises:
            NotFoundError: If the dataset does not exist
        """
        result = await db.execute(select(Dataset).where(Dataset.id == dataset_id))
        dataset = result.scalar_one_or_none()
        if not dataset:
            raise NotFoundError("Dataset", dataset_id)

        content_type = mime_type if mime_type else DEFAULT_CONTENT_TYPE
        storage_key = build_storage_key(dataset_id, file_name)

        asset = MediaAsset(
            dataset_id=dataset_id,
            requirement_id=dataset.requirement_id,
            original_name=file_name,
            mime_type=content_type,
            size=size,
            storage_bucket=self.signer.bucket,
            storage_key=storage_key,
            public_url=self.signer.build_public_url(storage_key),
            status=MediaStatus.PENDING_UPLOAD,
        )
        db.add(asset)
        await db.commit()
        await db.refresh(asset)

        if self.expires_in:
            upload = self.signer.create_presigned_upload_url(
                storage_key, content_type, expires_in=self.expires_in
            )
        else:
            upload = self.signer.create_presigned_upload_url(storage_key, content_type)

        uploads_requested_total.inc()
        log_upload_requested(logger, asset_id=asset.id, dataset_id=dataset_id, storage_key=storage_key)

        return UploadSlot(asset=asset, upload=upload)

    @staticmethod
    async def finalize_upload(
        db: AsyncSession,
        asset_id: int,
        report: UploadFinalization,
    ) -> MediaAsset:
        """
        Apply the client's completion report.

        Raises:
            NotFoundError: If the asset does not exist
            InvalidStateError: If the report would move the status backward
        """
        result = await db.execute(select(MediaAsset).where(MediaAsset.id == asset_id))
        asset = result.scalar_one_or_none()
        if not asset:
            raise NotFoundError("Asset", asset_id)

        if report.status == MediaStatus.PENDING_UPLOAD:
            raise InvalidStateError("An upload cannot be finalized as pending_upload")
        if asset.status == MediaStatus.FAILED and report.status != MediaStatus.FAILED:
            raise InvalidStateError(f"Asset {asset_id} failed and cannot be finalized again")

        now = utcnow()
        asset.status = report.status
        asset.uploaded_at = now
        asset.updated_at = now
        if report.size is not None:
            asset.size = report.size
        if report.width is not None:
            asset.width = report.width
        if report.height is not None:
            asset.height = report.height
        if report.checksum is not None:
            asset.checksum = report.checksum

        await db.commit()
        await db.refresh(asset)

        uploads_finalized_total.labels(status=report.status.value).inc()
        log_upload_finalized(logger, asset_id=asset_id, status=report.status.value)

        return asset

    @staticmethod
    async def list_assets(
        db: AsyncSession,
        dataset_id: Optional[int] = None,
        requirement_id: Optional[int] = None,
    ) -> List[MediaAsset]:
        """Assets newest first, optionally filtered by dataset/requirement."""
        query = select(MediaAsset)
        if dataset_id is not None:
            query = query.where(MediaAsset.dataset_id == dataset_id)
        if requirement_id is not None:
            query = query.where(MediaAsset.requirement_id == requirement_id)
        result = await db.execute(query.order_by(desc(MediaAsset.created_at), desc(MediaAsset.id)))
        return list(result.scalars().all())

    async def delete_asset(self, db: AsyncSession, asset_id: int) -> None:
        """
        Delete an asset row (and its captions), then try to remove the object.

        Raises:
            NotFoundError: If the asset does not exist
        """
        result = await db.execute(
            select(MediaAsset)
            .options(selectinload(MediaAsset.captions))
            .where(MediaAsset.id == asset_id)
        )
        asset = result.scalar_one_or_none()
        if not asset:
            raise NotFoundError("Asset", asset_id)

        storage_key = asset.storage_key
        await db.delete(asset)
        await db.commit()

        # Advisory cleanup; the row is already gone either way
        await self.signer.delete_object(storage_key)
