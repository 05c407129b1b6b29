"""
Caption service: the review state machine and bulk captioning entry points.

Transitions:
- create: pending, or completed when manual text is supplied
- trigger_captioning / regenerate: -> processing (AI fields cleared)
- batch worker: processing -> completed | rejected (app.services.caption_worker)
- approve / reject (single or batch): any -> approved | rejected
- update: edits text; status only changes when passed explicitly
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

from sqlalchemy import select, update, delete, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import NotFoundError
from app.models.base import utcnow
from app.models.caption import Caption, CaptionStatus
from app.models.dataset import Dataset
from app.models.media_asset import MediaAsset
from app.models.prompt_template import PromptTemplate
from app.models.automation_task import TaskType, TaskStatus
from app.services.automation import publish_automation_event
from app.utils.logging import log_captioning_triggered
from app.utils.metrics import captions_queued_total

logger = logging.getLogger(__name__)

UNKNOWN_APPROVER = "unknown"


@dataclass
class CaptionUpdate:
    """
    Reviewer edit. Fields left as None are not touched.
    """
    manual_caption: Optional[str] = None
    final_caption: Optional[str] = None
    status: Optional[CaptionStatus] = None
    rejection_reason: Optional[str] = None


def resolve_approver(approved_by: Optional[str], session_identity: Optional[str]) -> str:
    """Explicit approver, else the session identity, else 'unknown'."""
    return approved_by or session_identity or UNKNOWN_APPROVER


class CaptionService:
    """Service for caption review and captioning triggers."""

    @staticmethod
    async def list_captions(
        db: AsyncSession,
        media_asset_id: Optional[int] = None,
        dataset_id: Optional[int] = None,
        status: Optional[CaptionStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Caption]:
        """Captions newest first, with media asset and prompt template loaded."""
        query = select(Caption).options(
            selectinload(Caption.media_asset),
            selectinload(Caption.prompt_template),
        )
        if media_asset_id is not None:
            query = query.where(Caption.media_asset_id == media_asset_id)
        if status is not None:
            query = query.where(Caption.status == status)
        if dataset_id is not None:
            query = query.join(MediaAsset, Caption.media_asset_id == MediaAsset.id).where(
                MediaAsset.dataset_id == dataset_id
            )

        result = await db.execute(
            query.order_by(desc(Caption.created_at), desc(Caption.id)).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_caption(db: AsyncSession, caption_id: int) -> Caption:
        """
        Get one caption with its media asset and prompt template.

        Raises:
            NotFoundError: If the caption does not exist
        """
        result = await db.execute(
            select(Caption)
            .options(
                selectinload(Caption.media_asset),
                selectinload(Caption.prompt_template),
            )
            .where(Caption.id == caption_id)
            .execution_options(populate_existing=True)
        )
        caption = result.scalar_one_or_none()
        if not caption:
            raise NotFoundError("Caption", caption_id)
        return caption

    @staticmethod
    async def _get_for_update(db: AsyncSession, caption_id: int) -> Caption:
        result = await db.execute(select(Caption).where(Caption.id == caption_id))
        caption = result.scalar_one_or_none()
        if not caption:
            raise NotFoundError("Caption", caption_id)
        return caption

    @staticmethod
    async def create_caption(
        db: AsyncSession,
        media_asset_id: int,
        prompt_template_id: Optional[int] = None,
        manual_caption: Optional[str] = None,
    ) -> Caption:
        """
        Create a caption for an asset.

        Manual text makes the caption completed immediately, with
        final_caption mirroring it; otherwise it starts pending.

        Raises:
            NotFoundError: If the media asset or prompt template does not exist
        """
        result = await db.execute(select(MediaAsset.id).where(MediaAsset.id == media_asset_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Media asset", media_asset_id)
        if prompt_template_id is not None:
            await CaptionService._require_template(db, prompt_template_id)

        caption = Caption(
            media_asset_id=media_asset_id,
            prompt_template_id=prompt_template_id,
            manual_caption=manual_caption,
            final_caption=manual_caption,
            status=CaptionStatus.COMPLETED if manual_caption else CaptionStatus.PENDING,
        )
        db.add(caption)
        await db.commit()
        await db.refresh(caption)
        return caption

    @staticmethod
    async def update_caption(db: AsyncSession, caption_id: int, changes: CaptionUpdate) -> Caption:
        """
        Apply a partial reviewer edit.

        Setting status to approved stamps approved_at.

        Raises:
            NotFoundError: If the caption does not exist
        """
        caption = await CaptionService._get_for_update(db, caption_id)
        now = utcnow()

        if changes.manual_caption is not None:
            caption.manual_caption = changes.manual_caption
        if changes.final_caption is not None:
            caption.final_caption = changes.final_caption
        if changes.status is not None:
            caption.status = changes.status
            if changes.status == CaptionStatus.APPROVED:
                caption.approved_at = now
        if changes.rejection_reason is not None:
            caption.rejection_reason = changes.rejection_reason
        caption.updated_at = now

        await db.commit()
        await db.refresh(caption)
        return caption

    @staticmethod
    async def approve_caption(
        db: AsyncSession,
        caption_id: int,
        approved_by: Optional[str] = None,
        session_identity: Optional[str] = None,
    ) -> Caption:
        """
        Approve one caption from any state.

        Raises:
            NotFoundError: If the caption does not exist
        """
        caption = await CaptionService._get_for_update(db, caption_id)
        now = utcnow()
        caption.status = CaptionStatus.APPROVED
        caption.approved_at = now
        caption.approved_by = resolve_approver(approved_by, session_identity)
        caption.updated_at = now

        await db.commit()
        await db.refresh(caption)
        return caption

    @staticmethod
    async def reject_caption(db: AsyncSession, caption_id: int, reason: Optional[str] = None) -> Caption:
        """
        Reject one caption from any state.

        Raises:
            NotFoundError: If the caption does not exist
        """
        caption = await CaptionService._get_for_update(db, caption_id)
        caption.status = CaptionStatus.REJECTED
        caption.rejection_reason = reason
        caption.updated_at = utcnow()

        await db.commit()
        await db.refresh(caption)
        return caption

    @staticmethod
    async def batch_approve(
        db: AsyncSession,
        ids: List[int],
        approved_by: Optional[str] = None,
        session_identity: Optional[str] = None,
    ) -> int:
        """Approve every existing caption in ids. Returns the number updated."""
        now = utcnow()
        result = await db.execute(
            update(Caption)
            .where(Caption.id.in_(ids))
            .values(
                status=CaptionStatus.APPROVED,
                approved_at=now,
                approved_by=resolve_approver(approved_by, session_identity),
                updated_at=now,
            )
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def batch_reject(db: AsyncSession, ids: List[int], reason: Optional[str] = None) -> int:
        """Reject every existing caption in ids. Returns the number updated."""
        result = await db.execute(
            update(Caption)
            .where(Caption.id.in_(ids))
            .values(
                status=CaptionStatus.REJECTED,
                rejection_reason=reason,
                updated_at=utcnow(),
            )
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def delete_caption(db: AsyncSession, caption_id: int) -> None:
        """
        Permanently delete a caption.

        Raises:
            NotFoundError: If the caption does not exist
        """
        result = await db.execute(delete(Caption).where(Caption.id == caption_id))
        if result.rowcount == 0:
            await db.rollback()
            raise NotFoundError("Caption", caption_id)
        await db.commit()

    @staticmethod
    async def _require_template(db: AsyncSession, prompt_template_id: int) -> None:
        result = await db.execute(select(PromptTemplate.id).where(PromptTemplate.id == prompt_template_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Prompt template", prompt_template_id)

    @staticmethod
    async def get_default_template_id(db: AsyncSession) -> Optional[int]:
        result = await db.execute(
            select(PromptTemplate.id).where(PromptTemplate.is_default.is_(True)).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def trigger_captioning(
        db: AsyncSession,
        dataset_id: int,
        prompt_template_id: Optional[int] = None,
        media_asset_ids: Optional[List[int]] = None,
    ) -> Dict[str, Any]:
        """
        Queue AI captioning for assets in a dataset that have no caption row.

        Assets with any caption row (whatever its status) are skipped, so
        calling this twice never double-queues an asset.

        Args:
            db: Database session
            dataset_id: Dataset to scan
            prompt_template_id: Template to bind (default template if omitted)
            media_asset_ids: Optional subset of assets to consider

        Returns:
            {"queued": n, "caption_ids": [...]}

        Raises:
            NotFoundError: If the dataset or prompt template does not exist
        """
        result = await db.execute(select(Dataset.id).where(Dataset.id == dataset_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Dataset", dataset_id)
        if prompt_template_id is not None:
            await CaptionService._require_template(db, prompt_template_id)

        query = (
            select(MediaAsset.id)
            .outerjoin(Caption, Caption.media_asset_id == MediaAsset.id)
            .where(MediaAsset.dataset_id == dataset_id, Caption.id.is_(None))
        )
        if media_asset_ids:
            query = query.where(MediaAsset.id.in_(media_asset_ids))

        result = await db.execute(query.order_by(MediaAsset.id))
        asset_ids = list(result.scalars().all())

        if not asset_ids:
            return {"queued": 0, "caption_ids": []}

        template_id = prompt_template_id or await CaptionService.get_default_template_id(db)

        now = utcnow()
        captions = [
            Caption(
                media_asset_id=asset_id,
                prompt_template_id=template_id,
                status=CaptionStatus.PROCESSING,
                created_at=now,
                updated_at=now,
            )
            for asset_id in asset_ids
        ]
        db.add_all(captions)
        await db.commit()

        caption_ids = [caption.id for caption in captions]

        captions_queued_total.labels(source="trigger").inc(len(caption_ids))
        log_captioning_triggered(
            logger,
            dataset_id=dataset_id,
            queued=len(caption_ids),
            prompt_template_id=template_id
        )

        await publish_automation_event(
            "task.created",
            taskId=0,
            datasetId=dataset_id,
            taskType=TaskType.CAPTION.value,
            status=TaskStatus.RUNNING.value,
            assignedTo=None,
        )

        return {"queued": len(caption_ids), "caption_ids": caption_ids}

    @staticmethod
    async def regenerate(
        db: AsyncSession,
        ids: List[int],
        prompt_template_id: Optional[int] = None,
    ) -> int:
        """
        Send captions back to processing, from any state.

        Clears the previous AI output (ai_caption, confidence, tokens_used,
        generated_at) and rebinds the template (default template if omitted).

        Returns:
            len(ids), the number of captions requested

        Raises:
            NotFoundError: If the prompt template does not exist
        """
        if prompt_template_id is not None:
            await CaptionService._require_template(db, prompt_template_id)
        template_id = prompt_template_id or await CaptionService.get_default_template_id(db)

        await db.execute(
            update(Caption)
            .where(Caption.id.in_(ids))
            .values(
                status=CaptionStatus.PROCESSING,
                prompt_template_id=template_id,
                ai_caption=None,
                confidence=None,
                tokens_used=None,
                generated_at=None,
                updated_at=utcnow(),
            )
        )
        await db.commit()

        captions_queued_total.labels(source="regenerate").inc(len(ids))
        return len(ids)
