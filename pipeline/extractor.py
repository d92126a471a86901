"""Pull a JSON payload out of free text returned by a provider."""

import json
import re
from typing import Any

FENCE = "```"
FENCE_TAG = re.compile(r"^json", re.IGNORECASE)
LEADING_FENCE = re.compile(r"^```(?:json)?", re.IGNORECASE)
BRACKET_PAIRS = {"{": "}", "[": "]"}

_decoder = json.JSONDecoder()


def _is_json(text: str) -> bool:
    try:
        json.loads(text)
    except json.JSONDecodeError:
        return False
    return True


def _fenced_bodies(text: str) -> list[str]:
    # every pair of adjacent markers, so a stray marker in the prose cannot
    # swallow the opening fence of the real block
    positions = [m.start() for m in re.finditer(FENCE, text)]
    return [
        FENCE_TAG.sub("", text[start + len(FENCE) : end], count=1).strip()
        for start, end in zip(positions, positions[1:])
    ]


def _pick_fenced_body(bodies: list[str]) -> str:
    for body in bodies:
        if body[:1] in BRACKET_PAIRS and _is_json(body):
            return body
    for body in bodies:
        if body[:1] in BRACKET_PAIRS:
            return body
    return bodies[0]


def _strip_fences(raw: str) -> str:
    text = raw.strip()
    bodies = _fenced_bodies(text)
    if bodies:
        text = _pick_fenced_body(bodies)
    else:
        text = LEADING_FENCE.sub("", text, count=1)

    text = text.strip()
    if text.endswith(FENCE):
        text = text[: -len(FENCE)]
    return text.strip()


def _narrow_to_brackets(text: str) -> str:
    starts = [idx for idx in (text.find("{"), text.find("[")) if idx != -1]
    if not starts:
        return text
    start = min(starts)
    end = text.rfind(BRACKET_PAIRS[text[start]])
    if end <= start:
        return text
    return text[start : end + 1]


def extract_json(raw: Any) -> str:
    """
    Return the best candidate substring for strict JSON parsing.

    Handles fenced blocks (```json ... ```) anywhere in the text, a leading fence
    without a closing one, a trailing fence, and prose around a bare payload.
    When several fenced blocks are present the first one holding valid JSON
    wins, then the first one opening with a bracket. The result is not
    validated. Never raises.
    """
    if not isinstance(raw, str):
        return ""

    text = _strip_fences(raw)
    if text and text[0] not in BRACKET_PAIRS:
        text = _narrow_to_brackets(text)
    return text


def _leading_value(text: str) -> Any:
    """Decode the first complete JSON value starting at any bracket in ``text``."""
    for idx, char in enumerate(text):
        if char not in BRACKET_PAIRS:
            continue
        try:
            value, _ = _decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            continue
        return value
    raise ValueError("no complete JSON value")


def parse_json_payload(raw: Any) -> Any:
    """
    Extract and decode.

    When the extracted span is not strict JSON (prose after the payload that
    itself contains brackets, for example), the first complete object or array
    in the text is used instead.

    Raises:
        json.JSONDecodeError: nothing parseable was found
    """
    candidate = extract_json(raw)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as strict_error:
        if not isinstance(raw, str):
            raise
        try:
            return _leading_value(_strip_fences(raw))
        except ValueError:
            raise strict_error from None
