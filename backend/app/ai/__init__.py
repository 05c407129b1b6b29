"""
AI provider abstraction module.
Provides a unified interface for vision caption providers.
"""
from app.ai.base import CaptionRequest, CaptionResult, VisionCaptionProvider
from app.ai.factory import get_caption_provider

__all__ = ["CaptionRequest", "CaptionResult", "VisionCaptionProvider", "get_caption_provider"]
