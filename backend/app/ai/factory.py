"""
Caption provider factory.
Returns the configured vision provider for the batch worker.
"""
import logging

from app.ai.base import VisionCaptionProvider
from app.ai.vision_provider import OpenAIVisionProvider

logger = logging.getLogger(__name__)


def get_caption_provider() -> VisionCaptionProvider:
    """
    Factory function to get the caption provider.

    The provider is returned even when unconfigured: the missing key
    surfaces per call as VisionConfigError, before any network request.

    Returns:
        VisionCaptionProvider instance
    """
    provider = OpenAIVisionProvider()
    if not provider.is_configured():
        logger.warning("Vision provider selected but OPENAI_API_KEY is not configured")
    return provider
