"""
Requirement and dataset services.
Thin CRUD plus the dataset metric updates reported by automation.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import NotFoundError
from app.models.base import utcnow
from app.models.dataset import Dataset
from app.models.requirement import Requirement, RequirementStatus, RequirementPriority
from app.services.automation import publish_automation_event


def derive_pending_count(image_count: int, processed_count: int, pending_count: Optional[int] = None) -> int:
    """Explicit pending count, else images not yet processed (never negative)."""
    if pending_count is not None:
        return pending_count
    return max(image_count - processed_count, 0)


class RequirementService:
    """Service for requirements."""

    @staticmethod
    async def list_requirements(db: AsyncSession) -> List[Requirement]:
        result = await db.execute(
            select(Requirement).order_by(desc(Requirement.updated_at), desc(Requirement.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_requirement(
        db: AsyncSession,
        title: str,
        description: str,
        owner: str,
        team: str,
        priority: RequirementPriority,
        status: Optional[RequirementStatus] = None,
        expected_images: int = 0,
        ai_coverage_target: int = 80,
        tag_hints: Optional[List[str]] = None,
        brief_url: Optional[str] = None,
        risk_level: str = "normal",
        due_date: Optional[datetime] = None,
    ) -> Requirement:
        requirement = Requirement(
            title=title,
            description=description,
            owner=owner,
            team=team,
            status=status or RequirementStatus.INTAKE,
            priority=priority,
            expected_images=expected_images,
            ai_coverage_target=ai_coverage_target,
            tag_hints=tag_hints or [],
            brief_url=brief_url,
            risk_level=risk_level,
            due_date=due_date,
        )
        db.add(requirement)
        await db.commit()
        await db.refresh(requirement)
        return requirement

    @staticmethod
    async def update_status(db: AsyncSession, requirement_id: int, status: RequirementStatus) -> Requirement:
        result = await db.execute(select(Requirement).where(Requirement.id == requirement_id))
        requirement = result.scalar_one_or_none()
        if not requirement:
            raise NotFoundError("Requirement", requirement_id)

        requirement.status = status
        requirement.updated_at = utcnow()
        await db.commit()
        await db.refresh(requirement)
        return requirement


class DatasetService:
    """Service for datasets."""

    @staticmethod
    async def list_datasets(db: AsyncSession) -> List[Dataset]:
        """Datasets most recently updated first, with their requirement."""
        result = await db.execute(
            select(Dataset)
            .options(selectinload(Dataset.requirement))
            .order_by(desc(Dataset.updated_at), desc(Dataset.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_dataset(
        db: AsyncSession,
        requirement_id: int,
        name: str,
        storage_bucket: str,
        image_count: int = 0,
        processed_count: int = 0,
        pending_count: Optional[int] = None,
        ai_caption_coverage: int = 0,
        auto_tag_coverage: int = 0,
        review_coverage: int = 0,
        focus_tags: Optional[List[str]] = None,
        last_run_at: Optional[datetime] = None,
    ) -> Dataset:
        """
        Create a dataset under a requirement.

        Raises:
            NotFoundError: If the requirement does not exist
        """
        result = await db.execute(select(Requirement).where(Requirement.id == requirement_id))
        requirement = result.scalar_one_or_none()
        if not requirement:
            raise NotFoundError("Requirement", requirement_id)

        dataset = Dataset(
            requirement_id=requirement_id,
            name=name,
            storage_bucket=storage_bucket,
            image_count=image_count,
            processed_count=processed_count,
            pending_count=derive_pending_count(image_count, processed_count, pending_count),
            ai_caption_coverage=ai_caption_coverage,
            auto_tag_coverage=auto_tag_coverage,
            review_coverage=review_coverage,
            focus_tags=focus_tags or [],
            last_run_at=last_run_at,
        )
        db.add(dataset)
        await db.commit()
        await db.refresh(dataset)

        await publish_automation_event(
            "dataset.created",
            datasetId=dataset.id,
            requirementId=dataset.requirement_id,
            focusTags=list(dataset.focus_tags or []),
            targetCoverage={
                "caption": requirement.ai_coverage_target,
                "tag": dataset.auto_tag_coverage,
            },
        )
        return dataset

    @staticmethod
    async def update_metrics(
        db: AsyncSession,
        dataset_id: int,
        image_count: int,
        processed_count: int,
        ai_caption_coverage: int,
        auto_tag_coverage: int,
        review_coverage: int,
        pending_count: Optional[int] = None,
    ) -> Dataset:
        """
        Overwrite the coverage metrics of a dataset.

        Raises:
            NotFoundError: If the dataset does not exist
        """
        result = await db.execute(select(Dataset).where(Dataset.id == dataset_id))
        dataset = result.scalar_one_or_none()
        if not dataset:
            raise NotFoundError("Dataset", dataset_id)

        dataset.image_count = image_count
        dataset.processed_count = processed_count
        dataset.pending_count = derive_pending_count(image_count, processed_count, pending_count)
        dataset.ai_caption_coverage = ai_caption_coverage
        dataset.auto_tag_coverage = auto_tag_coverage
        dataset.review_coverage = review_coverage
        dataset.updated_at = utcnow()

        await db.commit()
        await db.refresh(dataset)

        await publish_automation_event(
            "dataset.metrics_updated",
            datasetId=dataset.id,
            imageCount=dataset.image_count,
            processedCount=dataset.processed_count,
            pendingCount=dataset.pending_count,
            coverage={
                "caption": dataset.ai_caption_coverage,
                "tag": dataset.auto_tag_coverage,
                "review": dataset.review_coverage,
            },
        )
        return dataset
