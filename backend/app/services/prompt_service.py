"""
Prompt template service.
At most one template is the default: making one default clears the others first.
"""
from dataclasses import dataclass, fields
from typing import List, Optional

from sqlalchemy import select, update, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError
from app.models.base import utcnow
from app.models.prompt_template import (
    PromptTemplate,
    DEFAULT_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
)

ENTITY = "Prompt template"


@dataclass
class PromptTemplateUpdate:
    """Partial template edit. None means untouched."""
    name: Optional[str] = None
    description: Optional[str] = None
    system_prompt: Optional[str] = None
    user_prompt_template: Optional[str] = None
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[int] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


class PromptTemplateService:
    """Service for prompt template CRUD and the default flag."""

    @staticmethod
    async def _clear_default(db: AsyncSession) -> None:
        await db.execute(
            update(PromptTemplate)
            .where(PromptTemplate.is_default.is_(True))
            .values(is_default=False, updated_at=utcnow())
        )

    @staticmethod
    async def list_templates(db: AsyncSession, active_only: bool = False) -> List[PromptTemplate]:
        query = select(PromptTemplate)
        if active_only:
            query = query.where(PromptTemplate.is_active.is_(True))
        result = await db.execute(query.order_by(desc(PromptTemplate.created_at), desc(PromptTemplate.id)))
        return list(result.scalars().all())

    @staticmethod
    async def get_template(db: AsyncSession, template_id: int) -> PromptTemplate:
        result = await db.execute(
            select(PromptTemplate)
            .where(PromptTemplate.id == template_id)
            .execution_options(populate_existing=True)
        )
        template = result.scalar_one_or_none()
        if not template:
            raise NotFoundError(ENTITY, template_id)
        return template

    @staticmethod
    async def get_default(db: AsyncSession) -> Optional[PromptTemplate]:
        """The default template, or None."""
        result = await db.execute(
            select(PromptTemplate).where(PromptTemplate.is_default.is_(True)).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_template(
        db: AsyncSession,
        name: str,
        system_prompt: str,
        user_prompt_template: str,
        description: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: int = DEFAULT_TEMPERATURE,
        is_default: bool = False,
        is_active: bool = True,
    ) -> PromptTemplate:
        if is_default:
            await PromptTemplateService._clear_default(db)

        template = PromptTemplate(
            name=name,
            description=description,
            system_prompt=system_prompt,
            user_prompt_template=user_prompt_template,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            is_default=is_default,
            is_active=is_active,
        )
        db.add(template)
        await db.commit()
        await db.refresh(template)
        return template

    @staticmethod
    async def update_template(
        db: AsyncSession,
        template_id: int,
        changes: PromptTemplateUpdate,
    ) -> PromptTemplate:
        """
        Apply a partial edit.

        Raises:
            NotFoundError: If the template does not exist
        """
        template = await PromptTemplateService.get_template(db, template_id)

        if changes.is_default is True:
            await PromptTemplateService._clear_default(db)

        for field in fields(changes):
            value = getattr(changes, field.name)
            if value is not None:
                setattr(template, field.name, value)
        template.updated_at = utcnow()

        await db.commit()
        await db.refresh(template)
        return template

    @staticmethod
    async def delete_template(db: AsyncSession, template_id: int) -> None:
        template = await PromptTemplateService.get_template(db, template_id)
        await db.delete(template)
        await db.commit()

    @staticmethod
    async def set_default(db: AsyncSession, template_id: int) -> PromptTemplate:
        """
        Make one template the default.

        Raises:
            NotFoundError: If the template does not exist (no default is cleared)
        """
        template = await PromptTemplateService.get_template(db, template_id)

        await PromptTemplateService._clear_default(db)
        template.is_default = True
        template.updated_at = utcnow()

        await db.commit()
        await db.refresh(template)
        return template
