"""
Tests for compose -> model call -> parse.
"""

import pytest

from classes.chat_prompts import SYSTEM_PROMPT
from classes.response_pipeline import (
    THINKING_STAGES,
    ReasoningServiceError,
    ResponsePipeline,
    generate_thinking_status,
)
from classes.section_parser import FORMULA_FALLBACK, GOALS_FALLBACK
from tests.conftest import FULL_RESPONSE, FakeChatLlm


class TestRun:

    @pytest.mark.asyncio
    async def test_structured_answer(self, fake_llm):
        result = await ResponsePipeline(fake_llm).run("How do I learn web development?")

        assert len(result.goals) == 3
        assert len(result.process) == 5
        assert result.full_text == FULL_RESPONSE

    @pytest.mark.asyncio
    async def test_single_call_with_composed_messages(self, fake_llm):
        await ResponsePipeline(fake_llm).run("What is entropy?")

        assert len(fake_llm.calls) == 1
        messages = fake_llm.calls[0]["messages"]
        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert 'Original prompt: "What is entropy?"' in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_sampling_parameters_are_forwarded(self, fake_llm):
        await ResponsePipeline(fake_llm).run("q", temperature=0.2, max_tokens=512)

        assert fake_llm.calls[0]["temperature"] == 0.2
        assert fake_llm.calls[0]["max_tokens"] == 512

    @pytest.mark.asyncio
    async def test_defaults(self, fake_llm):
        await ResponsePipeline(fake_llm).run("q")

        assert fake_llm.calls[0]["temperature"] == 0.7
        assert fake_llm.calls[0]["max_tokens"] == 2048

    @pytest.mark.asyncio
    async def test_unstructured_answer_uses_fallbacks(self):
        llm = FakeChatLlm(content="Plain prose only.")

        result = await ResponsePipeline(llm).run("q")

        assert result.goals == GOALS_FALLBACK
        assert result.formula == FORMULA_FALLBACK
        assert result.output == "Plain prose only."

    @pytest.mark.asyncio
    async def test_collaborator_failure_is_wrapped(self):
        llm = FakeChatLlm(error=TimeoutError("upstream timed out"))

        with pytest.raises(ReasoningServiceError) as exc_info:
            await ResponsePipeline(llm).run("q")

        assert isinstance(exc_info.value.__cause__, TimeoutError)
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"choices": []}, {"choices": [{}]}, "not a dict"])
    async def test_malformed_payload_is_wrapped(self, payload):
        llm = FakeChatLlm(payload=payload)

        with pytest.raises(ReasoningServiceError):
            await ResponsePipeline(llm).run("q")

    @pytest.mark.asyncio
    async def test_null_content_parses_as_empty(self):
        llm = FakeChatLlm(payload={"choices": [{"message": {"role": "assistant", "content": None}}]})

        result = await ResponsePipeline(llm).run("q")

        assert result.full_text == ""
        assert result.goals == GOALS_FALLBACK


class TestThinkingStatus:

    @pytest.mark.asyncio
    async def test_stage_sequence(self):
        events = [event async for event in generate_thinking_status(0)]

        assert [e["stage"] for e in events] == list(THINKING_STAGES) + ["complete"]
        assert [e["progress"] for e in events] == [20, 40, 60, 80, 100, 100]
