"""
Vision Extraction using Google Gemini

DESIGN DECISION: One multimodal request per screenshot.
1. The system instruction carries the schema, the user's categories and
   today's date
2. The user turn carries the inline image and a short instruction
3. The reply is returned as RAW TEXT - structure is recovered later by
   the recovery parser, never assumed here

This service does not retry. A failed analysis is reported to the user,
who can simply upload the screenshot again.
"""

from datetime import date
from typing import Optional, Sequence

import google.generativeai as genai

from snapledger.config import get_settings
from snapledger.services.vision.prompts import USER_INSTRUCTION, build_system_prompt


class AnalysisError(Exception):
    """Base exception for screenshot analysis errors."""

    code = "analysis_error"


class VisionProviderError(AnalysisError):
    """The vision provider call failed (network, auth, quota, ...)."""

    code = "provider_error"

    def __init__(self, message: str = "analysis failed"):
        super().__init__(message)


class EmptyResponseError(AnalysisError):
    """The provider answered without any text content."""

    code = "empty_response"

    def __init__(self, message: str = "no content returned from model"):
        super().__init__(message)


class GeminiVisionService:
    """
    Sends one screenshot to Gemini and returns the model's text.

    IMPORTANT BOUNDARIES:
    1. This service ONLY talks to the provider - it does NOT parse JSON
    2. Empty replies are errors, never an empty item list
    """

    def __init__(self, api_key: Optional[str] = None):
        settings = get_settings().gemini
        self._settings = settings
        self._api_key = api_key or settings.api_key
        self._configured = False

    def _configure_genai(self):
        """Configure Google Generative AI once per service."""
        if not self._configured:
            genai.configure(api_key=self._api_key)
            self._configured = True

    def _build_model(self, system_prompt: str) -> "genai.GenerativeModel":
        self._configure_genai()
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=system_prompt,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    async def extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        expense_categories: Sequence[str],
        income_categories: Sequence[str],
        today: date,
    ) -> str:
        """
        Run one analysis request.

        Args:
            image_bytes: Raw image content
            mime_type: MIME type of the image (e.g. image/png)
            expense_categories: Category names offered for expenses
            income_categories: Category names offered for income
            today: Fallback date the model should use

        Returns:
            The model's reply text, unmodified

        Raises:
            VisionProviderError: If the provider call fails
            EmptyResponseError: If the reply has no text
        """
        model = self._build_model(
            build_system_prompt(expense_categories, income_categories, today)
        )

        try:
            response = await model.generate_content_async([
                {"mime_type": mime_type, "data": image_bytes},
                USER_INSTRUCTION,
            ])
        except Exception as e:
            raise VisionProviderError(f"analysis failed: {e}") from e

        try:
            text = response.text
        except ValueError as e:
            # Raised by the SDK when the candidate has no text parts (e.g. blocked)
            raise EmptyResponseError() from e

        if not text or not text.strip():
            raise EmptyResponseError()

        return text
