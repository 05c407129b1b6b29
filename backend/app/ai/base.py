"""
Base class for vision caption providers.
The batch worker talks only to this interface, so providers are swappable
(and trivially faked in tests).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TOKENS = 500
DEFAULT_TEMPERATURE = 0.7

# Coarse, business-visible heuristic: not a probability
CONFIDENCE_CLEAN_STOP = 90
CONFIDENCE_DEGRADED = 70


@dataclass
class CaptionRequest:
    """One image plus the prompt pair to caption it with."""
    image_url: str
    system_prompt: str
    user_prompt: str
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None  # 0.0 - 1.0


@dataclass
class CaptionResult:
    caption: str
    model: str
    tokens_used: int
    confidence: int


def confidence_for_finish_reason(finish_reason: Optional[str]) -> int:
    """90 for a clean stop, 70 for anything else (truncation, filters...)."""
    return CONFIDENCE_CLEAN_STOP if finish_reason == "stop" else CONFIDENCE_DEGRADED


class VisionCaptionProvider(ABC):
    """
    Abstract base class for caption providers.

    All providers must implement:
    - generate_caption(): Caption one image
    - is_configured(): Whether credentials are present
    """

    name: str = "unknown"

    @abstractmethod
    async def generate_caption(self, request: CaptionRequest) -> CaptionResult:
        """
        Generate a caption for one image.

        Raises:
            VisionConfigError: If the provider is not configured (no network call made)
            VisionAPIError: On a non-success response or empty content
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        pass
