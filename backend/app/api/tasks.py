"""
Automation task endpoints.
Task creation and status changes are published to the automation webhook.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_db
from app.schemas.task import TaskCreate, TaskStatusUpdate, TaskResponse, TaskDetailResponse
from app.services.task_service import AutomationTaskService

router = APIRouter()


@router.get("", response_model=List[TaskDetailResponse])
async def list_tasks(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    tasks = await AutomationTaskService.list_tasks(db)
    return [TaskDetailResponse.model_validate(task) for task in tasks]


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    request: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    task = await AutomationTaskService.create_task(
        db,
        dataset_id=request.dataset_id,
        task_type=request.type,
        status=request.status,
        progress=request.progress,
        assigned_to=request.assigned_to,
        metadata=request.metadata
    )
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/status", response_model=TaskResponse)
async def update_task_status(
    task_id: int,
    request: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Move a task to a new status; started/completed timestamps follow."""
    task = await AutomationTaskService.update_status(
        db,
        task_id,
        status=request.status,
        progress=request.progress,
        failure_reason=request.failure_reason
    )
    return TaskResponse.model_validate(task)
