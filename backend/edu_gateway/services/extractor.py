"""Recover a JSON value from free-form model output.

This is a heuristic, not a repair parser. It copes with prose before and after
the payload, one level of markdown code fence, and an object or an array as the
payload. The span runs from the first opening bracket to the *last* closing
bracket of the same kind, because models often append commentary after valid
JSON and a first-closer cut would truncate nested structures.
"""

import json
import re
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel

SNIPPET_LIMIT = 200

_OPENING_FENCE = re.compile(r"```[A-Za-z0-9_-]*")
_FENCE = "```"


class JsonShape(str, Enum):
    OBJECT = "object"
    ARRAY = "array"


class ExtractionErrorKind(str, Enum):
    NO_JSON_FOUND = "NoJsonFound"
    UNBALANCED_BRACKETS = "UnbalancedBrackets"
    SYNTAX_ERROR = "SyntaxError"


class ExtractedJson(BaseModel):
    value: Any
    shape: JsonShape

    @property
    def ok(self) -> bool:
        return True


class ExtractionError(BaseModel):
    kind: ExtractionErrorKind
    message: str
    snippet: str = ""

    @property
    def ok(self) -> bool:
        return False


ExtractionResult = Union[ExtractedJson, ExtractionError]


def _first_opener(text: str) -> int:
    found = [i for i in (text.find("{"), text.find("[")) if i != -1]
    return min(found) if found else len(text)


def strip_code_fence(text: str) -> str:
    """Drop the fence markers that wrap the payload.

    The opening marker only counts before the first bracket and the closing
    one only after the last bracket; fences inside JSON strings are content.
    """
    opening = _OPENING_FENCE.search(text)
    if opening is None or opening.start() > _first_opener(text):
        return text
    text = text[: opening.start()] + text[opening.end():]
    closing = text.rfind(_FENCE)
    if closing > max(text.rfind("}"), text.rfind("]")):
        text = text[:closing] + text[closing + len(_FENCE):]
    return text


def extract(text: str) -> ExtractionResult:
    """Locate and parse the JSON value embedded in ``text``. Never raises."""
    body = strip_code_fence(text)

    first_object = body.find("{")
    first_array = body.find("[")
    if first_object == -1 and first_array == -1:
        return ExtractionError(
            kind=ExtractionErrorKind.NO_JSON_FOUND,
            message="no '{' or '[' in the text",
            snippet=body.strip()[:SNIPPET_LIMIT],
        )

    if first_array == -1 or (first_object != -1 and first_object < first_array):
        start, closer, shape = first_object, "}", JsonShape.OBJECT
    else:
        start, closer, shape = first_array, "]", JsonShape.ARRAY

    end = body.rfind(closer)
    if end < start:
        return ExtractionError(
            kind=ExtractionErrorKind.UNBALANCED_BRACKETS,
            message=f"no closing '{closer}' after position {start}",
            snippet=body[start:][:SNIPPET_LIMIT],
        )

    candidate = body[start : end + 1]
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as exc:
        return ExtractionError(
            kind=ExtractionErrorKind.SYNTAX_ERROR,
            message=str(exc),
            snippet=candidate[:SNIPPET_LIMIT],
        )
    return ExtractedJson(value=value, shape=shape)


__all__ = [
    "ExtractedJson",
    "ExtractionError",
    "ExtractionErrorKind",
    "ExtractionResult",
    "JsonShape",
    "extract",
    "strip_code_fence",
]
