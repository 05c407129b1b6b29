"""
Requirement endpoints.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_db
from app.schemas.dataset import RequirementCreate, RequirementStatusUpdate, RequirementResponse
from app.services.dataset_service import RequirementService

router = APIRouter()


@router.get("", response_model=List[RequirementResponse])
async def list_requirements(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    requirements = await RequirementService.list_requirements(db)
    return [RequirementResponse.model_validate(requirement) for requirement in requirements]


@router.post("", response_model=RequirementResponse, status_code=status.HTTP_201_CREATED)
async def create_requirement(
    request: RequirementCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    requirement = await RequirementService.create_requirement(db, **request.model_dump())
    return RequirementResponse.model_validate(requirement)


@router.post("/{requirement_id}/status", response_model=RequirementResponse)
async def update_requirement_status(
    requirement_id: int,
    request: RequirementStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    requirement = await RequirementService.update_status(db, requirement_id, request.status)
    return RequirementResponse.model_validate(requirement)
