"""
Database models package.
"""
from app.models.base import Base
from app.models.requirement import Requirement, RequirementStatus, RequirementPriority
from app.models.dataset import Dataset
from app.models.media_asset import MediaAsset, MediaStatus
from app.models.prompt_template import PromptTemplate
from app.models.caption import Caption, CaptionStatus
from app.models.automation_task import AutomationTask, TaskStatus, TaskType

__all__ = [
    "Base",
    "Requirement",
    "RequirementStatus",
    "RequirementPriority",
    "Dataset",
    "MediaAsset",
    "MediaStatus",
    "PromptTemplate",
    "Caption",
    "CaptionStatus",
    "AutomationTask",
    "TaskStatus",
    "TaskType",
]
