# classes/section_parser.py
"""
Splits free-form model output into the five labeled sections.

Expected layout (any order, any letter case):

    GOALS:
    - ...
    CONSTRAINTS:
    - ...
    OUTPUT:
    free text
    FORMULA:
    free text
    PROCESS:
    1. ...

A header must sit on its own line and end with a colon. Everything after a
header up to the next header (or end of text) belongs to it. Missing sections
fall back to fixed placeholders, so parsing never fails.
"""
import json
import re
from typing import Any

from pydantic import BaseModel

GOALS_FALLBACK = ["Analysis in progress"]
CONSTRAINTS_FALLBACK = ["Standard constraints apply"]
FORMULA_FALLBACK = "Logical reasoning applied"
PROCESS_FALLBACK = ["Step 1: Analyze", "Step 2: Process", "Step 3: Conclude"]
OUTPUT_FALLBACK = "No output provided"
OUTPUT_FALLBACK_CHARS = 200

SECTION_KEYWORDS = ("GOALS", "CONSTRAINTS", "OUTPUT", "FORMULA", "PROCESS")

# Header line: optional markdown heading / numbering / bold around the keyword,
# then a colon and the end of the line.
_HEADER_RE = re.compile(
    r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\d+[.)][ \t]*)?(?:\*\*)?[ \t]*"
    r"(GOALS?|CONSTRAINTS?|OUTPUT|FORMULA|PROCESS)"
    r"[ \t]*(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?[ \t]*\r?$",
    flags=re.IGNORECASE | re.MULTILINE,
)

# one leading marker, spaced or not; "**" opens bold text, not a bullet
_BULLET_RE = re.compile(r"^(?:[-•◦▪‣⁃●∙]|\*(?!\*))\s*")


class StructuredResponse(BaseModel):
    goals: list[str]
    constraints: list[str]
    output: str
    formula: str
    process: list[str]
    full_text: str

    def to_message_fields(self) -> dict[str, str]:
        """Column values for an assistant message row."""
        return {
            "content": self.full_text,
            "goals": json.dumps(self.goals),
            "constraints": json.dumps(self.constraints),
            "output": self.output,
            "formula": self.formula,
            "process": json.dumps(self.process),
        }


def _canonical_keyword(word: str) -> str:
    word = word.upper()
    if word in ("GOAL", "CONSTRAINT"):
        return word + "S"
    return word


def _find_sections(text: str) -> dict[str, str]:
    headers = list(_HEADER_RE.finditer(text))
    sections: dict[str, str] = {}
    for idx, match in enumerate(headers):
        keyword = _canonical_keyword(match.group(1))
        if keyword in sections:
            continue
        body_end = headers[idx + 1].start() if idx + 1 < len(headers) else len(text)
        sections[keyword] = text[match.end():body_end]
    return sections


def _split_list_items(body: str) -> list[str]:
    items = []
    for line in body.splitlines():
        line = line.strip()
        if not line:
            continue
        item = _BULLET_RE.sub("", line, count=1).strip()
        if item:
            items.append(item)
    return items


def parse_structured_response(content: str) -> StructuredResponse:
    """
    Parse raw model text into a StructuredResponse.
    Total over all strings: unknown layouts degrade to the fallback values.
    """
    text = content if isinstance(content, str) else ""
    sections = _find_sections(text)

    goals = _split_list_items(sections.get("GOALS", ""))
    constraints = _split_list_items(sections.get("CONSTRAINTS", ""))
    process = _split_list_items(sections.get("PROCESS", ""))
    output = sections.get("OUTPUT", "").strip()
    formula = sections.get("FORMULA", "").strip()

    if not output:
        head = text[:OUTPUT_FALLBACK_CHARS]
        output = head if head.strip() else OUTPUT_FALLBACK

    return StructuredResponse(
        goals=goals or list(GOALS_FALLBACK),
        constraints=constraints or list(CONSTRAINTS_FALLBACK),
        output=output,
        formula=formula or FORMULA_FALLBACK,
        process=process or list(PROCESS_FALLBACK),
        full_text=text,
    )


# -----------------------
# Storage boundary
# -----------------------

def _load_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        raw = value
    else:
        try:
            raw = json.loads(value)
        except (TypeError, ValueError):
            return []
        if not isinstance(raw, list):
            return []
    return [str(x) for x in raw if str(x).strip()]


def structured_response_from_message(row: dict) -> StructuredResponse:
    """
    Rebuild a StructuredResponse from a stored message row.
    Null or malformed columns become the usual fallback values here, once.
    """
    full_text = row.get("content") or ""
    output = (row.get("output") or "").strip()
    if not output:
        head = full_text[:OUTPUT_FALLBACK_CHARS]
        output = head if head.strip() else OUTPUT_FALLBACK

    return StructuredResponse(
        goals=_load_string_list(row.get("goals")) or list(GOALS_FALLBACK),
        constraints=_load_string_list(row.get("constraints")) or list(CONSTRAINTS_FALLBACK),
        output=output,
        formula=(row.get("formula") or "").strip() or FORMULA_FALLBACK,
        process=_load_string_list(row.get("process")) or list(PROCESS_FALLBACK),
        full_text=full_text,
    )
