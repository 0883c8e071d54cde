"""Structured output parsing for LLM responses."""

import json
import logging
import re
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

BULLET_MARKER = re.compile(r"^[-*•]\s*")


class ParseError(Exception):
    """Error parsing LLM output."""

    def __init__(self, message: str, raw_content: str, errors: Optional[list[Any]] = None):
        super().__init__(message)
        self.raw_content = raw_content
        self.errors = errors or []


def extract_json(text: str) -> Optional[str]:
    """
    Extract JSON from text that may contain markdown code blocks or other content.

    Handles:
    - ```json ... ``` blocks
    - ``` ... ``` blocks
    - A raw JSON object embedded in text
    """
    code_block_patterns = [
        r"```json\s*([\s\S]*?)\s*```",
        r"```\s*([\s\S]*?)\s*```",
    ]

    for pattern in code_block_patterns:
        match = re.search(pattern, text)
        if match:
            content = match.group(1).strip()
            if content.startswith(("{", "[")):
                return content

    match = re.search(r"(\{[\s\S]*\})", text)
    if match:
        try:
            json.loads(match.group(1))
            return match.group(1)
        except json.JSONDecodeError:
            pass

    return None


def parse_json(text: str, strict: bool = True) -> Any:
    """
    Parse JSON from LLM output.

    Args:
        text: Raw LLM output text
        strict: If True, raise error on parse failure

    Returns:
        Parsed JSON object

    Raises:
        ParseError: If JSON cannot be parsed
    """
    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        pass

    # Structured output should be bare JSON; tolerate fenced or wrapped payloads
    json_str = extract_json(text)
    if json_str:
        try:
            return json.loads(json_str)
        except json.JSONDecodeError as e:
            if strict:
                raise ParseError(
                    f"Invalid JSON structure: {e}",
                    raw_content=text,
                    errors=[str(e)],
                )
            return None

    if strict:
        raise ParseError(
            "No valid JSON found in response",
            raw_content=text,
        )
    return None


def parse_model(text: str, model_class: Type[T], strict: bool = True) -> Optional[T]:
    """
    Parse LLM output into a Pydantic model.

    Args:
        text: Raw LLM output text
        model_class: Pydantic model class to parse into
        strict: If True, raise error on parse failure

    Returns:
        Parsed model instance

    Raises:
        ParseError: If parsing or validation fails
    """
    data = parse_json(text, strict=strict)
    if data is None:
        if strict:
            raise ParseError(
                f"Expected a JSON object for {model_class.__name__}, got null",
                raw_content=text,
            )
        return None

    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        if strict:
            raise ParseError(
                f"Validation failed for {model_class.__name__}: {e}",
                raw_content=text,
                errors=e.errors(),
            )
        return None


def parse_bullet_points(text: str) -> list[str]:
    """
    Split free text into bullet items.

    Every non-blank line is one item; leading ``-``, ``*`` or ``•`` markers
    are stripped.

    Args:
        text: Text containing bullet points

    Returns:
        List of bullet point strings (without bullets)
    """
    points = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        point = BULLET_MARKER.sub("", line).strip()
        if point:
            points.append(point)
    return points
