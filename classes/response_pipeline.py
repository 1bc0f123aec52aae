# classes/response_pipeline.py
import asyncio
from typing import Any, AsyncIterator

from classes import app_config
from classes.app_config import logger
from classes.llm_client import ModelCollaborator
from classes.prompt_composer import build_messages
from classes.section_parser import StructuredResponse, parse_structured_response

THINKING_STAGES = ("organizing", "formulating", "thinking", "processing", "re-organizing")


class ReasoningServiceError(RuntimeError):
    """The model collaborator could not produce an answer."""


def _extract_content(payload: Any) -> str:
    # malformed payloads raise here and are wrapped by the caller
    choice = payload["choices"][0]
    content = choice["message"].get("content")
    return content if isinstance(content, str) else ""


class ResponsePipeline:
    """
    compose prompt -> one model call -> parse sections.

    Nothing is persisted here; the caller stores the result only after a
    successful return.
    """

    def __init__(self, chat_llm: ModelCollaborator):
        self.chat_llm = chat_llm

    async def run(
        self,
        user_prompt: str,
        temperature: float = app_config.DEFAULT_TEMPERATURE,
        max_tokens: int = app_config.DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> StructuredResponse:
        messages = build_messages(user_prompt)
        try:
            payload = await asyncio.to_thread(
                self.chat_llm.invoke,
                messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
            content = _extract_content(payload)
        except Exception as e:
            logger.error(f"[Pipeline] model call failed: {type(e).__name__}: {e}")
            raise ReasoningServiceError("Failed to get response from the reasoning service") from e

        return parse_structured_response(content)


async def generate_thinking_status(delay_seconds: float = 0.8) -> AsyncIterator[dict]:
    """Progress events shown while a response is being prepared."""
    for i, stage in enumerate(THINKING_STAGES):
        yield {
            "stage": stage,
            "progress": round((i + 1) / len(THINKING_STAGES) * 100),
        }
        await asyncio.sleep(delay_seconds)

    yield {"stage": "complete", "progress": 100}
