"""JSON helpers for structured model output."""

from __future__ import annotations

from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

_CLOSERS = {"{": "}", "[": "]"}


def extract_first_json_value(text: str, openers: str = "{") -> str:
    """
    Return the first balanced top-level JSON object (or array, if "[" is in `openers`)
    embedded in text. Models sometimes wrap JSON in prose or code fences.
    """
    starts = [pos for pos in (text.find(ch) for ch in openers) if pos != -1]
    if not starts:
        raise ValueError("No JSON value found in model output.")
    start = min(starts)
    stack: list[str] = []
    in_string = False
    escaped = False
    for index, ch in enumerate(text[start:], start=start):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif stack and ch == stack[-1]:
            stack.pop()
            if not stack:
                return text[start : index + 1]
    raise ValueError("Unbalanced JSON value in model output.")


def parse_structured_output(content: str, output_type: Type[ModelT]) -> ModelT:
    """Validate content against output_type, retrying on the first embedded JSON object."""
    try:
        return output_type.model_validate_json(content)
    except ValidationError as first_error:
        try:
            extracted = extract_first_json_value(content)
        except ValueError:
            raise first_error from None
        if extracted == content.strip():
            raise
        return output_type.model_validate_json(extracted)
