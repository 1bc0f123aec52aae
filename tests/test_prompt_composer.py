"""
Tests for the five-section prompt shaping.
"""

from classes.chat_prompts import SYSTEM_PROMPT
from classes.prompt_composer import build_messages, decompose_prompt
from classes.section_parser import SECTION_KEYWORDS


class TestDecomposePrompt:

    def test_original_prompt_is_kept(self):
        result = decompose_prompt("How do I learn web development?")

        assert result.original_prompt == "How do I learn web development?"

    def test_decomposition_quotes_the_prompt(self):
        result = decompose_prompt("How do I learn web development?")

        assert 'Original prompt: "How do I learn web development?"' in result.decomposition

    def test_decomposition_names_every_section(self):
        result = decompose_prompt("Plan a trip")

        for keyword in SECTION_KEYWORDS:
            assert f"{keyword}:" in result.decomposition

    def test_section_order(self):
        text = decompose_prompt("Plan a trip").decomposition
        positions = [text.index(f"{keyword}:") for keyword in SECTION_KEYWORDS]

        assert positions == sorted(positions)

    def test_braces_and_quotes_survive_verbatim(self):
        prompt = 'Explain {USER_PROMPT} and "f(x) = {x}"'
        result = decompose_prompt(prompt)

        assert f'Original prompt: "{prompt}"' in result.decomposition

    def test_empty_prompt(self):
        result = decompose_prompt("")

        assert result.original_prompt == ""
        assert 'Original prompt: ""' in result.decomposition


class TestBuildMessages:

    def test_system_then_user(self):
        messages = build_messages("What is entropy?")

        assert [m["role"] for m in messages] == ["system", "user"]
        assert messages[0]["content"] == SYSTEM_PROMPT
        assert messages[1]["content"] == decompose_prompt("What is entropy?").decomposition

    def test_system_prompt_mentions_all_sections(self):
        for keyword in SECTION_KEYWORDS:
            assert keyword in SYSTEM_PROMPT
