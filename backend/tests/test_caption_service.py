"""
Tests for the caption review state machine.
"""
import pytest
from sqlalchemy import select, func

from app.exceptions import NotFoundError
from app.models.caption import Caption, CaptionStatus
from app.models.prompt_template import PromptTemplate
from app.services.caption_service import CaptionService, CaptionUpdate, resolve_approver
from conftest import create_asset


async def make_template(db, name="Catalogue", is_default=False):
    template = PromptTemplate(
        name=name,
        system_prompt="Describe products.",
        user_prompt_template="Describe this image.",
        is_default=is_default,
    )
    db.add(template)
    await db.commit()
    await db.refresh(template)
    return template


async def count_captions(db) -> int:
    result = await db.execute(select(func.count(Caption.id)))
    return result.scalar_one()


class TestResolveApprover:

    def test_explicit_wins(self):
        assert resolve_approver("lead@example.com", "reviewer@example.com") == "lead@example.com"

    def test_session_identity(self):
        assert resolve_approver(None, "reviewer@example.com") == "reviewer@example.com"

    def test_unknown(self):
        assert resolve_approver(None, None) == "unknown"


class TestCreateAndUpdate:
    """Tests for create_caption and update_caption."""

    @pytest.mark.asyncio
    async def test_create_without_text_is_pending(self, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id)

        assert caption.status == CaptionStatus.PENDING
        assert caption.final_caption is None

    @pytest.mark.asyncio
    async def test_create_with_manual_text_is_completed(self, db_session, test_assets):
        caption = await CaptionService.create_caption(
            db_session, test_assets[0].id, manual_caption="A tabby cat"
        )

        assert caption.status == CaptionStatus.COMPLETED
        assert caption.manual_caption == "A tabby cat"
        assert caption.final_caption == "A tabby cat"

    @pytest.mark.asyncio
    async def test_create_for_unknown_asset(self, db_session):
        with pytest.raises(NotFoundError):
            await CaptionService.create_caption(db_session, 999)

    @pytest.mark.asyncio
    async def test_update_text_keeps_status(self, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id, manual_caption="old")

        updated = await CaptionService.update_caption(
            db_session, caption.id, CaptionUpdate(final_caption="new")
        )

        assert updated.final_caption == "new"
        assert updated.manual_caption == "old"
        assert updated.status == CaptionStatus.COMPLETED
        assert updated.approved_at is None

    @pytest.mark.asyncio
    async def test_update_to_approved_stamps_time(self, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id)

        updated = await CaptionService.update_caption(
            db_session, caption.id, CaptionUpdate(status=CaptionStatus.APPROVED)
        )

        assert updated.status == CaptionStatus.APPROVED
        assert updated.approved_at is not None

    @pytest.mark.asyncio
    async def test_update_unknown_caption(self, db_session):
        with pytest.raises(NotFoundError):
            await CaptionService.update_caption(db_session, 999, CaptionUpdate(final_caption="x"))


class TestReview:
    """Tests for approve/reject, single and batch."""

    @pytest.mark.asyncio
    async def test_approve_records_session_identity(self, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id)

        approved = await CaptionService.approve_caption(
            db_session, caption.id, session_identity="reviewer@example.com"
        )

        assert approved.status == CaptionStatus.APPROVED
        assert approved.approved_by == "reviewer@example.com"
        assert approved.approved_at is not None

    @pytest.mark.asyncio
    async def test_approve_from_rejected(self, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id)
        await CaptionService.reject_caption(db_session, caption.id, "blurry")

        approved = await CaptionService.approve_caption(db_session, caption.id, approved_by="lead")

        assert approved.status == CaptionStatus.APPROVED
        assert approved.approved_by == "lead"

    @pytest.mark.asyncio
    async def test_reject_stores_reason(self, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id)

        rejected = await CaptionService.reject_caption(db_session, caption.id, "Wrong product")

        assert rejected.status == CaptionStatus.REJECTED
        assert rejected.rejection_reason == "Wrong product"

    @pytest.mark.asyncio
    async def test_approve_unknown_caption(self, db_session):
        with pytest.raises(NotFoundError):
            await CaptionService.approve_caption(db_session, 999)

    @pytest.mark.asyncio
    async def test_batch_approve_counts_existing_rows(self, db_session, test_assets):
        first = await CaptionService.create_caption(db_session, test_assets[0].id)
        second = await CaptionService.create_caption(db_session, test_assets[1].id)

        updated = await CaptionService.batch_approve(
            db_session, [first.id, second.id, 999], session_identity="reviewer@example.com"
        )

        assert updated == 2
        caption = await CaptionService.get_caption(db_session, second.id)
        assert caption.status == CaptionStatus.APPROVED
        assert caption.approved_by == "reviewer@example.com"

    @pytest.mark.asyncio
    async def test_batch_reject(self, db_session, test_assets):
        first = await CaptionService.create_caption(db_session, test_assets[0].id)

        updated = await CaptionService.batch_reject(db_session, [first.id], "Off brand")

        assert updated == 1
        caption = await CaptionService.get_caption(db_session, first.id)
        assert caption.status == CaptionStatus.REJECTED
        assert caption.rejection_reason == "Off brand"

    @pytest.mark.asyncio
    async def test_delete(self, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id)

        await CaptionService.delete_caption(db_session, caption.id)

        assert await count_captions(db_session) == 0
        with pytest.raises(NotFoundError):
            await CaptionService.delete_caption(db_session, caption.id)


class TestListCaptions:

    @pytest.mark.asyncio
    async def test_filters(self, db_session, test_requirement, test_dataset, test_assets):
        from app.models.dataset import Dataset

        other_dataset = Dataset(requirement_id=test_requirement.id, name="other", storage_bucket="ct-assets")
        db_session.add(other_dataset)
        await db_session.commit()
        other_asset = await create_asset(db_session, other_dataset, "other.jpg")

        await CaptionService.create_caption(db_session, test_assets[0].id, manual_caption="cat")
        await CaptionService.create_caption(db_session, test_assets[1].id)
        await CaptionService.create_caption(db_session, other_asset.id)

        in_dataset = await CaptionService.list_captions(db_session, dataset_id=test_dataset.id)
        completed = await CaptionService.list_captions(db_session, status=CaptionStatus.COMPLETED)
        for_asset = await CaptionService.list_captions(db_session, media_asset_id=other_asset.id)

        assert len(in_dataset) == 2
        assert [c.final_caption for c in completed] == ["cat"]
        assert len(for_asset) == 1
        assert for_asset[0].media_asset.original_name == "other.jpg"

    @pytest.mark.asyncio
    async def test_pagination(self, db_session, test_assets):
        for asset in test_assets:
            await CaptionService.create_caption(db_session, asset.id)

        page = await CaptionService.list_captions(db_session, limit=2, offset=2)

        assert len(page) == 1


class TestTriggerCaptioning:
    """Tests for trigger_captioning and regenerate."""

    @pytest.mark.asyncio
    async def test_trigger_queues_uncaptioned_assets(self, db_session, test_dataset, test_assets):
        template = await make_template(db_session, is_default=True)

        result = await CaptionService.trigger_captioning(db_session, test_dataset.id)

        assert result["queued"] == 3
        assert len(result["caption_ids"]) == 3
        captions = await CaptionService.list_captions(db_session, dataset_id=test_dataset.id)
        assert {c.status for c in captions} == {CaptionStatus.PROCESSING}
        assert {c.prompt_template_id for c in captions} == {template.id}

    @pytest.mark.asyncio
    async def test_trigger_is_idempotent(self, db_session, test_dataset, test_assets):
        first = await CaptionService.trigger_captioning(db_session, test_dataset.id)
        second = await CaptionService.trigger_captioning(db_session, test_dataset.id)

        assert first["queued"] == 3
        assert second == {"queued": 0, "caption_ids": []}
        assert await count_captions(db_session) == 3

    @pytest.mark.asyncio
    async def test_trigger_skips_assets_with_any_caption(self, db_session, test_dataset, test_assets):
        existing = await CaptionService.create_caption(db_session, test_assets[0].id)
        await CaptionService.reject_caption(db_session, existing.id, "bad")

        result = await CaptionService.trigger_captioning(db_session, test_dataset.id)

        assert result["queued"] == 2

    @pytest.mark.asyncio
    async def test_trigger_subset(self, db_session, test_dataset, test_assets):
        result = await CaptionService.trigger_captioning(
            db_session, test_dataset.id, media_asset_ids=[test_assets[1].id]
        )

        assert result["queued"] == 1
        caption = await CaptionService.get_caption(db_session, result["caption_ids"][0])
        assert caption.media_asset_id == test_assets[1].id

    @pytest.mark.asyncio
    async def test_trigger_without_default_template(self, db_session, test_dataset, test_assets):
        result = await CaptionService.trigger_captioning(db_session, test_dataset.id)

        caption = await CaptionService.get_caption(db_session, result["caption_ids"][0])
        assert caption.prompt_template_id is None

    @pytest.mark.asyncio
    async def test_regenerate_clears_ai_output(self, db_session, test_assets):
        template = await make_template(db_session, name="Retry")
        caption = Caption(
            media_asset_id=test_assets[0].id,
            ai_caption="old text",
            final_caption="old text",
            status=CaptionStatus.APPROVED,
            model="gpt-4o",
            confidence=90,
            tokens_used=120,
        )
        db_session.add(caption)
        await db_session.commit()

        count = await CaptionService.regenerate(db_session, [caption.id], prompt_template_id=template.id)

        assert count == 1
        refreshed = await CaptionService.get_caption(db_session, caption.id)
        assert refreshed.status == CaptionStatus.PROCESSING
        assert refreshed.prompt_template_id == template.id
        assert refreshed.ai_caption is None
        assert refreshed.confidence is None
        assert refreshed.tokens_used is None
        assert refreshed.generated_at is None
        assert refreshed.final_caption == "old text"

    @pytest.mark.asyncio
    async def test_regenerate_returns_requested_count(self, db_session):
        assert await CaptionService.regenerate(db_session, [998, 999]) == 2


class TestRelatedRowsMustExist:
    """Unknown templates and datasets are reported, never stored."""

    @pytest.mark.asyncio
    async def test_trigger_with_unknown_template(self, db_session, test_dataset, test_assets):
        with pytest.raises(NotFoundError) as exc_info:
            await CaptionService.trigger_captioning(db_session, test_dataset.id, prompt_template_id=999)

        assert exc_info.value.entity == "Prompt template"
        assert await count_captions(db_session) == 0

    @pytest.mark.asyncio
    async def test_trigger_with_unknown_dataset(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await CaptionService.trigger_captioning(db_session, 999)

        assert exc_info.value.entity == "Dataset"

    @pytest.mark.asyncio
    async def test_regenerate_with_unknown_template(self, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id, manual_caption="A cat")

        with pytest.raises(NotFoundError):
            await CaptionService.regenerate(db_session, [caption.id], prompt_template_id=999)

        refreshed = await CaptionService.get_caption(db_session, caption.id)
        assert refreshed.status == CaptionStatus.COMPLETED
        assert refreshed.prompt_template_id is None

    @pytest.mark.asyncio
    async def test_create_with_unknown_template(self, db_session, test_assets):
        with pytest.raises(NotFoundError) as exc_info:
            await CaptionService.create_caption(db_session, test_assets[0].id, prompt_template_id=999)

        assert exc_info.value.entity == "Prompt template"
        assert await count_captions(db_session) == 0

    @pytest.mark.asyncio
    async def test_create_with_existing_template(self, db_session, test_assets):
        template = await make_template(db_session)

        caption = await CaptionService.create_caption(
            db_session, test_assets[0].id, prompt_template_id=template.id
        )

        assert caption.prompt_template_id == template.id
