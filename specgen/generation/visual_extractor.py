"""
Visual element extractor.

Mines generated prose for short visual phrases (characters, locations,
objects, atmosphere) used to ground the image prompt. This is a bounded
heuristic over a fixed rule table: output for a given text never changes
unless VISUAL_RULES changes.
"""

import re
from typing import Callable, Dict, List, Tuple

MAX_ELEMENTS = 5
MATCHES_PER_RULE = 2
MIN_PHRASE_LENGTH = 3
MAX_PHRASE_LENGTH = 49
# Containment only counts as a duplicate when the shorter phrase is longer than this
CONTAINMENT_MIN_LENGTH = 5

TITLE_MARKER_PATTERN = re.compile(r"\*\*Title:.*?\*\*", re.IGNORECASE | re.DOTALL)
MOTION_VERB_PATTERN = re.compile(r"\s+(stood|walked|ran|sat|looked|gazed).*$", re.IGNORECASE | re.DOTALL)
LEADING_PREPOSITION_PATTERN = re.compile(r"^(in|at|on|through)\s+(the\s+)?", re.IGNORECASE)


def _trim_motion_verb(phrase: str) -> str:
    return MOTION_VERB_PATTERN.sub("", phrase)


def _strip_preposition(phrase: str) -> str:
    return LEADING_PREPOSITION_PATTERN.sub("", phrase)


def _identity(phrase: str) -> str:
    return phrase


def _compile(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern, re.IGNORECASE)


# Category order is discovery order. Each category: (normalizer, [patterns])
VISUAL_RULES: Dict[str, Tuple[Callable[[str], str], List["re.Pattern[str]"]]] = {
    "characters": (_trim_motion_verb, [
        _compile(r"(Dr\.|Professor|Captain|Agent|Detective|Pandit|Guru|Swami)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)"),
        _compile(r"(Arjun|Priya|Raj|Kavya|Dev|Meera|Ravi|Anita|Vikram|Shreya)\s+(?:stood|walked|ran|sat|looked|gazed)"),
    ]),
    "locations": (_strip_preposition, [
        _compile(r"(in|at|on|through)\s+(the\s+)?([A-Z][a-z\s]{3,30}(?:city|planet|station|facility|temple|palace))"),
        _compile(r"(Mumbai|Delhi|Bangalore|Chennai|Kolkata|Hyderabad)"),
    ]),
    "objects": (_identity, [
        _compile(r"(advanced|alien|ancient|glowing|metallic|golden)\s+(scanner|device|weapon|helmet|artifact|tabla|sitar)"),
    ]),
    "atmosphere": (_identity, [
        _compile(r"(red|blue|green|golden|silver|purple|saffron)\s+(light|glow|mist|sky|flame)"),
    ]),
}


def _is_duplicate(candidate: str, kept: List[str]) -> bool:
    lowered = candidate.lower()
    for existing in kept:
        other = existing.lower()
        if lowered == other:
            return True
        shorter, longer = (lowered, other) if len(lowered) <= len(other) else (other, lowered)
        if len(shorter) > CONTAINMENT_MIN_LENGTH and shorter in longer:
            return True
    return False


def extract_visual_elements(text: str) -> List[str]:
    """
    Extract up to five visual phrases from generated text.

    Steps:
    1. Remove the **Title: ...** marker
    2. For each rule (in table order) take the first two matches
    3. Normalize per category and keep phrases of 3-49 characters
    4. Drop case-insensitive duplicates and contained phrases
    5. Keep the first five in discovery order

    Never raises; empty or unmatched input returns [].
    """
    if not text or not isinstance(text, str):
        return []

    clean_text = TITLE_MARKER_PATTERN.sub("", text).strip()

    elements: List[str] = []
    for normalize, patterns in VISUAL_RULES.values():
        for pattern in patterns:
            for match in list(pattern.finditer(clean_text))[:MATCHES_PER_RULE]:
                phrase = " ".join(normalize(match.group(0)).split())
                if not MIN_PHRASE_LENGTH <= len(phrase) <= MAX_PHRASE_LENGTH:
                    continue
                if _is_duplicate(phrase, elements):
                    continue
                elements.append(phrase)
                if len(elements) >= MAX_ELEMENTS:
                    return elements

    return elements
