"""
Automation task service.

Timestamps follow the task status:
- running: started_at = now, completed_at cleared
- succeeded / failed: completed_at = now
- queued / paused: completed_at cleared, started_at kept as is
- blocked: neither touched
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import NotFoundError
from app.models.base import utcnow
from app.models.automation_task import AutomationTask, TaskType, TaskStatus, FINISHED_TASK_STATUSES
from app.models.dataset import Dataset
from app.services.automation import publish_automation_event

logger = logging.getLogger(__name__)


def default_progress(status: TaskStatus) -> int:
    """Progress when the caller gives none: 100 for succeeded, else 0."""
    return 100 if status == TaskStatus.SUCCEEDED else 0


class AutomationTaskService:
    """Service for automation task tracking."""

    @staticmethod
    async def list_tasks(db: AsyncSession) -> List[AutomationTask]:
        """Tasks most recently updated first, with dataset and requirement."""
        result = await db.execute(
            select(AutomationTask)
            .options(selectinload(AutomationTask.dataset).selectinload(Dataset.requirement))
            .order_by(desc(AutomationTask.updated_at), desc(AutomationTask.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_task(
        db: AsyncSession,
        dataset_id: int,
        task_type: TaskType,
        status: TaskStatus = TaskStatus.QUEUED,
        progress: int = 0,
        assigned_to: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AutomationTask:
        """
        Create a task. A task created running is stamped started; one
        created succeeded/failed is stamped completed.

        Raises:
            NotFoundError: If the dataset does not exist
        """
        result = await db.execute(select(Dataset.id).where(Dataset.id == dataset_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Dataset", dataset_id)

        now = utcnow()
        task = AutomationTask(
            dataset_id=dataset_id,
            type=task_type,
            status=status,
            progress=progress,
            assigned_to=assigned_to,
            task_metadata=metadata or {},
            started_at=now if status == TaskStatus.RUNNING else None,
            completed_at=now if status in FINISHED_TASK_STATUSES else None,
            created_at=now,
            updated_at=now,
        )
        db.add(task)
        await db.commit()
        await db.refresh(task)

        await publish_automation_event(
            "task.created",
            taskId=task.id,
            datasetId=task.dataset_id,
            taskType=task.type.value,
            status=task.status.value,
            assignedTo=task.assigned_to,
        )
        return task

    @staticmethod
    async def update_status(
        db: AsyncSession,
        task_id: int,
        status: TaskStatus,
        progress: Optional[int] = None,
        failure_reason: Optional[str] = None,
    ) -> AutomationTask:
        """
        Move a task to a new status.

        failure_reason is overwritten on every call (cleared when omitted).

        Raises:
            NotFoundError: If the task does not exist
        """
        result = await db.execute(select(AutomationTask).where(AutomationTask.id == task_id))
        task = result.scalar_one_or_none()
        if not task:
            raise NotFoundError("Task", task_id)

        now = utcnow()
        task.status = status
        task.progress = progress if progress is not None else default_progress(status)
        task.failure_reason = failure_reason
        task.updated_at = now

        if status == TaskStatus.RUNNING:
            task.started_at = now
            task.completed_at = None
        elif status in FINISHED_TASK_STATUSES:
            task.completed_at = now
        elif status in (TaskStatus.QUEUED, TaskStatus.PAUSED):
            task.completed_at = None

        await db.commit()
        await db.refresh(task)

        await publish_automation_event(
            "task.updated",
            taskId=task.id,
            datasetId=task.dataset_id,
            status=task.status.value,
            progress=task.progress,
            failureReason=task.failure_reason,
        )
        return task
