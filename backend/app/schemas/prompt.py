"""
Pydantic schemas for prompt template endpoints.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from app.models.prompt_template import DEFAULT_MODEL, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE


class PromptTemplateCreate(BaseModel):
    """Schema for creating a prompt template."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    system_prompt: str = Field(..., min_length=1)
    user_prompt_template: str = Field(..., min_length=1)
    model: str = DEFAULT_MODEL
    max_tokens: int = Field(DEFAULT_MAX_TOKENS, ge=1, le=4096)
    temperature: int = Field(DEFAULT_TEMPERATURE, ge=0, le=100, description="0-100, divided by 100 before use")
    is_default: bool = False
    is_active: bool = True


class PromptTemplateUpdateRequest(BaseModel):
    """Partial edit. Omitted fields are left untouched."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    system_prompt: Optional[str] = Field(None, min_length=1)
    user_prompt_template: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = None
    max_tokens: Optional[int] = Field(None, ge=1, le=4096)
    temperature: Optional[int] = Field(None, ge=0, le=100)
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


class PromptTemplateResponse(BaseModel):
    """Schema for prompt template response."""
    id: int
    name: str
    description: Optional[str] = None
    system_prompt: str
    user_prompt_template: str
    model: str
    max_tokens: int
    temperature: int
    is_default: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
