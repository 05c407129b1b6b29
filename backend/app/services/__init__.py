"""
Business logic services.
"""
from app.services.caption_service import CaptionService, CaptionUpdate
from app.services.prompt_service import PromptTemplateService, PromptTemplateUpdate
from app.services.task_service import AutomationTaskService
from app.services.dataset_service import DatasetService, RequirementService

__all__ = [
    "CaptionService",
    "CaptionUpdate",
    "PromptTemplateService",
    "PromptTemplateUpdate",
    "AutomationTaskService",
    "DatasetService",
    "RequirementService",
]
