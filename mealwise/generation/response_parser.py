"""
Tolerant parsing of generation replies.

A reply is expected to hold one JSON document in one of three shapes:

    RecipeList    - a bare array of recipe objects
    WrappedList   - an object with a "meals" array
    SingleRecipe  - one recipe object (has a name and ingredients)

parse_reply() strips code fences and parses strictly. A truncated reply
gets one repair pass: append the closer of the innermost open bracket,
or failing that, close every open bracket. Anything else raises
UnparseableReply.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .errors import UnparseableReply

logger = logging.getLogger(__name__)

NAME_FIELDS = ("name", "title")
INGREDIENT_FIELDS = ("ingredients", "mainIngredients", "main_ingredients")
WRAPPER_FIELDS = ("meals",)


@dataclass(frozen=True)
class RecipeList:
    records: List[Dict[str, Any]]


@dataclass(frozen=True)
class WrappedList:
    field: str
    records: List[Dict[str, Any]]


@dataclass(frozen=True)
class SingleRecipe:
    record: Dict[str, Any]


DecodedReply = Union[RecipeList, WrappedList, SingleRecipe]


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) around the payload."""
    stripped = text.strip()
    if "```" not in stripped:
        return stripped

    lines = stripped.split("\n")
    inside = False
    body = []
    for line in lines:
        if line.strip().startswith("```"):
            if inside:
                break
            inside = True
            continue
        if inside:
            body.append(line)

    # Unclosed fence (truncated reply): keep what followed the opening fence
    return "\n".join(body).strip() if body else stripped.strip("`").strip()


def _extract_payload(text: str) -> str:
    """Drop any prose before the first bracket."""
    starts = [i for i in (text.find("["), text.find("{")) if i >= 0]
    if not starts:
        return text
    return text[min(starts):]


def open_brackets(text: str) -> Optional[List[str]]:
    """Brackets still open at the end of ``text``, outermost first.

    String contents are ignored. Returns None when the text ends inside a
    string, since no closing bracket can repair that.
    """
    stack = []
    in_string = False
    escaped = False
    for char in text:
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
        elif char in "[{":
            stack.append(char)
        elif char in "]}":
            if stack:
                stack.pop()
    if in_string:
        return None
    return stack


def repair_suffixes(text: str) -> List[str]:
    """Candidate closing suffixes: the innermost closer, then all open brackets closed."""
    stack = open_brackets(text)
    if not stack:
        return []
    closers = ["]" if bracket == "[" else "}" for bracket in reversed(stack)]
    candidates = [closers[0]]
    if len(closers) > 1:
        candidates.append("".join(closers))
    return candidates


def load_json(text: str) -> Any:
    """Strict parse, then one bounded repair pass for truncated replies."""
    payload = _extract_payload(strip_code_fences(text))
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        error = e

    trimmed = payload.rstrip().rstrip(",")
    for suffix in repair_suffixes(trimmed):
        try:
            data = json.loads(trimmed + suffix)
        except json.JSONDecodeError:
            continue
        logger.info(f"[PARSER] Repaired truncated reply by appending '{suffix}'")
        return data

    raise UnparseableReply(f"Reply is not valid JSON: {error}", raw_reply=text) from error


def _looks_like_recipe(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and any(value.get(f) for f in NAME_FIELDS)
        and any(f in value for f in INGREDIENT_FIELDS)
    )


def decode_reply(data: Any) -> DecodedReply:
    """Name the shape of a parsed reply."""
    if isinstance(data, list):
        return RecipeList(records=[r for r in data if isinstance(r, dict)])
    if isinstance(data, dict):
        for wrapper in WRAPPER_FIELDS:
            if isinstance(data.get(wrapper), list):
                return WrappedList(field=wrapper, records=[r for r in data[wrapper] if isinstance(r, dict)])
        if _looks_like_recipe(data):
            return SingleRecipe(record=data)
    raise UnparseableReply(f"Unrecognized reply shape: {type(data).__name__}")


def records_of(decoded: DecodedReply) -> List[Dict[str, Any]]:
    if isinstance(decoded, RecipeList):
        return list(decoded.records)
    if isinstance(decoded, WrappedList):
        return list(decoded.records)
    if isinstance(decoded, SingleRecipe):
        return [decoded.record]
    raise TypeError(f"Not a decoded reply: {decoded!r}")


def parse_reply(raw_reply: str) -> List[Dict[str, Any]]:
    """Extract recipe-like records from a raw reply.

    Raises:
        UnparseableReply: no JSON, an unrecognized shape, or no records
    """
    if not raw_reply or not raw_reply.strip():
        raise UnparseableReply("Reply is empty", raw_reply=raw_reply or "")

    try:
        decoded = decode_reply(load_json(raw_reply))
    except UnparseableReply as e:
        e.raw_reply = raw_reply
        logger.warning(f"[PARSER] {e}")
        raise

    records = records_of(decoded)
    if not records:
        raise UnparseableReply("Reply contained no recipe records", raw_reply=raw_reply)

    logger.debug(f"[PARSER] Decoded {type(decoded).__name__} with {len(records)} record(s)")
    return records
