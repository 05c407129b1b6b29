"""
Prompt template endpoints.
All endpoints require Firebase JWT authentication.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_db
from app.schemas.prompt import PromptTemplateCreate, PromptTemplateUpdateRequest, PromptTemplateResponse
from app.services.prompt_service import PromptTemplateService, PromptTemplateUpdate

router = APIRouter()


@router.get("", response_model=List[PromptTemplateResponse])
async def list_templates(
    active_only: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    templates = await PromptTemplateService.list_templates(db, active_only=active_only)
    return [PromptTemplateResponse.model_validate(template) for template in templates]


@router.get("/default", response_model=Optional[PromptTemplateResponse])
async def get_default_template(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """The default template, or null when none is flagged."""
    template = await PromptTemplateService.get_default(db)
    return PromptTemplateResponse.model_validate(template) if template else None


@router.get("/{template_id}", response_model=PromptTemplateResponse)
async def get_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    template = await PromptTemplateService.get_template(db, template_id)
    return PromptTemplateResponse.model_validate(template)


@router.post("", response_model=PromptTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    request: PromptTemplateCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create a template. is_default=true clears the previous default."""
    template = await PromptTemplateService.create_template(db, **request.model_dump())
    return PromptTemplateResponse.model_validate(template)


@router.patch("/{template_id}", response_model=PromptTemplateResponse)
async def update_template(
    template_id: int,
    request: PromptTemplateUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    template = await PromptTemplateService.update_template(
        db,
        template_id,
        PromptTemplateUpdate(**request.model_dump())
    )
    return PromptTemplateResponse.model_validate(template)


@router.post("/{template_id}/default", response_model=PromptTemplateResponse)
async def set_default_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Make this template the only default."""
    template = await PromptTemplateService.set_default(db, template_id)
    return PromptTemplateResponse.model_validate(template)


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    await PromptTemplateService.delete_template(db, template_id)
    return {"success": True}
