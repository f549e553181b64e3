"""
Defensive parsing of LLM responses.
"""

import json
import re
from typing import Any

JSON_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

# Leading phrases models sometimes prepend to a bare label
LABEL_PREFIXES = ("category:", "group title:", "title:", "label:")


class MalformedResponseError(ValueError):
    """Raised when a provider response does not contain the expected JSON."""


def parse_json_response(content: str) -> dict[str, Any]:
    """
    Parse a JSON object out of an LLM response.

    Tries, in order: the whole response, a fenced ```json block, and the
    outermost {...} span embedded in surrounding text.

    Args:
        content: Raw response text

    Returns:
        The parsed JSON object

    Raises:
        MalformedResponseError: If no JSON object can be recovered
    """
    if content is None:
        raise MalformedResponseError("Response is empty")

    text = content.strip()
    candidates = [text]

    fence_match = JSON_FENCE_PATTERN.search(text)
    if fence_match:
        candidates.append(fence_match.group(1).strip())

    object_match = JSON_OBJECT_PATTERN.search(text)
    if object_match:
        candidates.append(object_match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise MalformedResponseError(
        f"Response is not valid JSON: {text[:200]!r}"
    )


def normalize_label(text: str) -> str:
    """
    Reduce a short LLM answer to a normalized category/label name.

    Handles answers wrapped in JSON ({"category": "News"}), quotes, a leading
    "Category:" prefix and trailing punctuation. The result is lower-cased.

    Examples:
        >>> normalize_label('"News."')
        'news'
        >>> normalize_label('{"category": "Sports"}')
        'sports'
    """
    label = (text or "").strip()

    if label.startswith("{"):
        try:
            parsed = parse_json_response(label)
        except MalformedResponseError:
            parsed = {}
        string_values = [v for v in parsed.values() if isinstance(v, str)]
        if string_values:
            label = string_values[0].strip()

    lowered = label.lower()
    for prefix in LABEL_PREFIXES:
        if lowered.startswith(prefix):
            label = label[len(prefix):].strip()
            break

    # Multi-line answers: the first line is the label
    label = label.splitlines()[0] if label else ""
    label = label.strip().strip('"').strip("'").strip("`").rstrip(".").strip()
    return label.lower()
