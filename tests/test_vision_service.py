"""Tests for the Gemini vision client and its prompt."""

from datetime import date

import pytest

from snapledger.models.ledger import CategoryIcon
from snapledger.services.vision import (
    EmptyResponseError,
    GeminiVisionService,
    USER_INSTRUCTION,
    VisionProviderError,
    build_system_prompt,
)
from snapledger.services.vision import gemini_service


class TestSystemPrompt:
    """Tests for build_system_prompt()."""

    def test_prompt_contains_categories_and_today(self):
        prompt = build_system_prompt(["Food", "Transport"], ["Salary"], date(2024, 5, 20))
        assert "Expense categories: Food, Transport" in prompt
        assert "Income categories: Salary" in prompt
        assert "2024-05-20" in prompt

    def test_prompt_lists_every_icon(self):
        prompt = build_system_prompt([], [], date(2024, 5, 20))
        for icon in CategoryIcon:
            assert icon.value in prompt

    def test_prompt_describes_the_schema(self):
        prompt = build_system_prompt([], [], date(2024, 5, 20))
        for key in ('"items"', '"isNewCategory"', '"suggestedIcon"', '"suggestedColor"'):
            assert key in prompt


class _Response:
    def __init__(self, text=None, blocked=False):
        self._text = text
        self._blocked = blocked

    @property
    def text(self):
        if self._blocked:
            raise ValueError("response has no text parts")
        return self._text


class _FakeModel:
    instances: list = []

    def __init__(self, model_name, system_instruction, generation_config):
        self.model_name = model_name
        self.system_instruction = system_instruction
        self.generation_config = generation_config
        self.contents = None
        _FakeModel.instances.append(self)

    async def generate_content_async(self, contents):
        self.contents = contents
        return _FakeModel.next_response()


@pytest.fixture
def fake_genai(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    _FakeModel.instances = []
    monkeypatch.setattr(gemini_service.genai, "configure", lambda api_key: None)
    monkeypatch.setattr(gemini_service.genai, "GenerativeModel", _FakeModel)
    return _FakeModel


class TestGeminiVisionService:
    """Tests for GeminiVisionService.extract() with a fake SDK."""

    @pytest.mark.asyncio
    async def test_sends_one_multimodal_request(self, fake_genai):
        fake_genai.next_response = staticmethod(lambda: _Response('{"items": []}'))

        text = await GeminiVisionService().extract(
            b"png-bytes", "image/png", ["Food"], ["Salary"], date(2024, 5, 20),
        )

        assert text == '{"items": []}'
        model = fake_genai.instances[-1]
        assert "Food" in model.system_instruction
        assert model.contents[0] == {"mime_type": "image/png", "data": b"png-bytes"}
        assert model.contents[1] == USER_INSTRUCTION

    @pytest.mark.asyncio
    async def test_blocked_response_is_empty(self, fake_genai):
        fake_genai.next_response = staticmethod(lambda: _Response(blocked=True))
        with pytest.raises(EmptyResponseError):
            await GeminiVisionService().extract(b"x", "image/png", [], [], date(2024, 5, 20))

    @pytest.mark.asyncio
    async def test_blank_text_is_empty(self, fake_genai):
        fake_genai.next_response = staticmethod(lambda: _Response("   "))
        with pytest.raises(EmptyResponseError) as exc_info:
            await GeminiVisionService().extract(b"x", "image/png", [], [], date(2024, 5, 20))
        assert exc_info.value.code == "empty_response"

    @pytest.mark.asyncio
    async def test_provider_failure(self, fake_genai):
        def boom():
            raise RuntimeError("quota exceeded")

        fake_genai.next_response = staticmethod(boom)
        with pytest.raises(VisionProviderError) as exc_info:
            await GeminiVisionService().extract(b"x", "image/png", [], [], date(2024, 5, 20))
        assert exc_info.value.code == "provider_error"
