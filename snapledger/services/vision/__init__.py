"""Vision extraction services."""

from snapledger.services.vision.gemini_service import (
    AnalysisError,
    EmptyResponseError,
    GeminiVisionService,
    VisionProviderError,
)
from snapledger.services.vision.prompts import USER_INSTRUCTION, build_system_prompt

__all__ = [
    "AnalysisError",
    "EmptyResponseError",
    "GeminiVisionService",
    "VisionProviderError",
    "USER_INSTRUCTION",
    "build_system_prompt",
]
