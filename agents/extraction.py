"""Helpers for turning freeform model replies into structured data.

Handles the output patterns models produce in practice:
- Direct JSON output
- JSON wrapped in markdown code blocks (```json ... ``` or ``` ... ```)
- Prose before or after the JSON, fenced or not
- Plain text organised under bolded ALL-CAPS headers (**HEADER:**)
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from typing import Any

from backend.errors import ParseError

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```[\w-]*[ \t]*\n?(.*?)```", re.DOTALL)

# **INTRODUCTION:** and **INTRODUCTION**: are both common
SECTION_HEADER = re.compile(r"\*\*\s*([A-Z][A-Z0-9 &/'()-]*?)\s*(?::\*\*|\*\*\s*:)")

_CLOSER_FOR = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the stripped text if there is none."""
    match = CODE_FENCE.search(text)
    if match is not None:
        return match.group(1).strip()
    return text.strip()


def _balanced_end(text: str, start: int) -> int | None:
    """Index of the bracket closing the one at ``start``, ignoring brackets inside strings."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSER_FOR:
            stack.append(_CLOSER_FOR[char])
        elif char in "}]":
            if not stack or char != stack.pop():
                return None
            if not stack:
                return index
    return None


def _scan_json(source: str) -> Iterator[Any]:
    """Yield each outermost balanced structure in ``source`` that parses as JSON.

    Structures nested inside a parsed value are not yielded separately.
    """
    start = 0
    while start < len(source):
        if source[start] in _CLOSER_FOR:
            end = _balanced_end(source, start)
            if end is not None:
                try:
                    value = json.loads(source[start : end + 1])
                except json.JSONDecodeError:
                    pass
                else:
                    yield value
                    start = end + 1
                    continue
        start += 1


def iter_json(text: str) -> Iterator[Any]:
    """Yield every JSON value found in a model reply, in order of appearance.

    The body of the first fenced block is tried as a whole, then scanned for
    balanced ``{...}``/``[...]`` structures. When the fence yields nothing
    the full reply is scanned as well.
    """
    body = strip_code_fences(text)
    found = False
    try:
        yield json.loads(body)
        found = True
    except json.JSONDecodeError:
        for value in _scan_json(body):
            found = True
            yield value
    if not found and body != text.strip():
        yield from _scan_json(text)


def extract_json(text: str, context: str = "model reply", expect: type | tuple[type, ...] | None = None) -> Any:
    """Extract and parse JSON from a model reply.

    Args:
        text: Raw model reply.
        context: Description for error messages (e.g., "daily challenge").
        expect: Skip values that are not of this type (e.g., ``dict``).

    Returns:
        The first parsed JSON value of the expected type.

    Raises:
        ParseError: No parseable JSON structure of the expected type was found.
    """
    seen: list[str] = []
    for value in iter_json(text):
        if expect is None or isinstance(value, expect):
            return value
        seen.append(type(value).__name__)

    logger.debug("Unparseable %s: %s", context, text[:500])
    if seen:
        wanted = expect.__name__ if isinstance(expect, type) else "/".join(t.__name__ for t in expect)
        raise ParseError(f"Expected a JSON {wanted} for {context}, found only {', '.join(seen)}", raw_text=text)
    raise ParseError(f"Could not parse {context} as JSON", raw_text=text)


def extract_json_object(text: str, context: str = "model reply") -> dict[str, Any]:
    """Like :func:`extract_json` but the result must be a JSON object."""
    return extract_json(text, context, expect=dict)


def extract_sections(text: str, header_pattern: str | re.Pattern[str] = SECTION_HEADER) -> dict[str, str]:
    """Split text into ``{header: content}`` using bolded section headers.

    The pattern's first group is the header name. Headers may appear in any
    order; a repeated header keeps its last content. Text with no matching
    header yields an empty mapping.
    """
    pattern = re.compile(header_pattern) if isinstance(header_pattern, str) else header_pattern
    matches = list(pattern.finditer(text))
    sections: dict[str, str] = {}
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        sections[match.group(1).strip()] = text[match.end() : end].strip()
    return sections


_LABEL_KEYS = ("name", "concept", "topic", "title", "text")


def _item_text(item: Any) -> str:
    if isinstance(item, dict):
        for key in _LABEL_KEYS:
            if item.get(key):
                return str(item[key]).strip()
        return json.dumps(item, ensure_ascii=False)
    return str(item).strip()


def as_str_list(value: Any) -> list[str]:
    """Coerce a model-supplied value into a list of strings.

    Objects inside the list are reduced to their label (name, concept, ...).
    """
    if value is None:
        return []
    if isinstance(value, list):
        return [text for text in (_item_text(item) for item in value if item is not None) if text]
    text = _item_text(value)
    return [text] if text else []


def as_text(value: Any, default: str = "") -> str:
    """Coerce a model-supplied value into a string, falling back to ``default``."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip() or default
    return str(value)


def clamp_int(value: Any, low: int, high: int, default: int = 0) -> int:
    """Parse a number the model may have sent as text and clamp it to [low, high]."""
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(low, min(high, number))
