# classes/prompt_composer.py
from pydantic import BaseModel

from classes.base_utils import unsafe_string_format
from classes.chat_prompts import DECOMPOSITION_PROMPT, SYSTEM_PROMPT


class PromptDecomposition(BaseModel):
    original_prompt: str
    decomposition: str


def decompose_prompt(prompt: str) -> PromptDecomposition:
    """Wrap the user prompt in the five-section instruction template."""
    return PromptDecomposition(
        original_prompt=prompt,
        decomposition=unsafe_string_format(DECOMPOSITION_PROMPT, USER_PROMPT=prompt),
    )


def build_messages(prompt: str) -> list[dict[str, str]]:
    """System + user messages for one model call."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": decompose_prompt(prompt).decomposition},
    ]
