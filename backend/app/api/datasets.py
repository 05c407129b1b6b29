"""
Dataset endpoints.
Creation and metric updates are published to the automation webhook.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_db
from app.schemas.dataset import DatasetCreate, DatasetMetricsUpdate, DatasetResponse, DatasetDetailResponse
from app.services.dataset_service import DatasetService

router = APIRouter()


@router.get("", response_model=List[DatasetDetailResponse])
async def list_datasets(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    datasets = await DatasetService.list_datasets(db)
    return [DatasetDetailResponse.model_validate(dataset) for dataset in datasets]


@router.post("", response_model=DatasetResponse, status_code=status.HTTP_201_CREATED)
async def create_dataset(
    request: DatasetCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    dataset = await DatasetService.create_dataset(db, **request.model_dump())
    return DatasetResponse.model_validate(dataset)


@router.post("/{dataset_id}/metrics", response_model=DatasetResponse)
async def update_dataset_metrics(
    dataset_id: int,
    request: DatasetMetricsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Overwrite coverage metrics; pending_count is derived when omitted."""
    dataset = await DatasetService.update_metrics(db, dataset_id, **request.model_dump())
    return DatasetResponse.model_validate(dataset)
