"""
Prompt Builder - fiction and image prompt construction.

Also holds the small text helpers applied to model output (title
extraction and word counting).
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .visual_extractor import extract_visual_elements

logger = logging.getLogger(__name__)

FICTION_PREAMBLE = "Create a compelling speculative fiction story with the following elements:"
FICTION_CLOSING = (
    "Write a story that incorporates these elements naturally. "
    "Begin with a compelling title formatted as **Title: Your Title**."
)
IMAGE_PREAMBLE = "Create a beautiful, detailed image"
IMAGE_PROMPT_MAX_LENGTH = 4000
FIRST_LINE_TITLE_LIMIT = 100

TITLE_PATTERN = re.compile(r"\*\*Title:\s*([^*\n]+)\*\*")


def _readable_name(name: str) -> str:
    """'tech-level' -> 'tech level'"""
    return name.replace("-", " ").replace("_", " ").strip()


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def build_fiction_prompt(parameters: Dict[str, Any], year: Optional[int] = None) -> str:
    """
    Build the user prompt for fiction generation.

    Args:
        parameters: {category: {parameter-name: value}}
        year: Optional setting year

    Returns:
        Prompt text. Identical input always yields identical text.
    """
    lines = [FICTION_PREAMBLE, ""]

    if year:
        lines.append(f"Setting: Year {year}")

    for category, category_params in parameters.items():
        if not isinstance(category_params, dict):
            continue
        for param, value in category_params.items():
            if value is None:
                continue
            lines.append(f"{_readable_name(param)}: {_format_value(value)}")

    lines.append("")
    lines.append(FICTION_CLOSING)
    return "\n".join(lines)


def build_image_prompt(
    year: Optional[int] = None,
    generated_text: Optional[str] = None,
    style_suffix: str = "",
) -> str:
    """
    Build the image prompt, truncated to IMAGE_PROMPT_MAX_LENGTH.

    Visual phrases from generated_text are added as a "showing:" clause.
    """
    prompt = IMAGE_PREAMBLE

    if generated_text:
        elements = extract_visual_elements(generated_text)
        if elements:
            prompt += f" showing: {', '.join(elements)}"

    if year:
        prompt += f" Set in year {year}."

    if style_suffix:
        prompt += f" {style_suffix}"

    return prompt[:IMAGE_PROMPT_MAX_LENGTH]


def extract_title(content: str, today: Optional[datetime] = None) -> str:
    """
    Title from model output.

    Order: **Title: X** marker, then the first line when shorter than 100
    characters, then "Fiction YYYY-MM-DD".
    """
    match = TITLE_PATTERN.search(content)
    if match:
        return match.group(1).strip()

    first_line = content.split("\n", 1)[0]
    if len(first_line) < FIRST_LINE_TITLE_LIMIT:
        title = re.sub(r"^\*\*|\*\*$", "", first_line.strip()).lstrip("#").strip()
        if title:
            return title

    today = today or datetime.now(timezone.utc)
    return f"Fiction {today.strftime('%Y-%m-%d')}"


def count_words(content: str) -> int:
    """Whitespace-delimited word count."""
    return len(content.split())
