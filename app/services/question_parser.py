import json
import logging
import re
from typing import Any, List

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from app.core.exceptions import MalformedResponseError
from app.schemas.content import GeneratedQuestion

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")
_BRACKETED = re.compile(r"\[[\s\S]*\]")
_questions_adapter = TypeAdapter(List[GeneratedQuestion])


def _strip_code_fence(text: str) -> str:
    return _CODE_FENCE.sub("", text.strip())


def load_payload(raw: str) -> Any:
    """Parse the raw output, salvaging once from the first bracketed block."""
    text = _strip_code_fence(raw or "")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Content service output is not valid JSON, trying to salvage a bracketed block")

    match = _BRACKETED.search(text)
    if not match:
        raise MalformedResponseError("No JSON array found in content service output.")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Salvaged block is not valid JSON: {e}")


def parse_questions(raw: str, count: int) -> List[GeneratedQuestion]:
    """
    Turn raw content-service output into exactly `count` validated questions.

    Surplus descriptors are dropped; fewer than `count`, or any descriptor
    without four options and a single correct one, is malformed.
    """
    payload = load_payload(raw)
    if isinstance(payload, dict) and isinstance(payload.get("questions"), list):
        payload = payload["questions"]
    if not isinstance(payload, list):
        raise MalformedResponseError("Content service output is not a list of questions.")

    try:
        questions = _questions_adapter.validate_python(payload[:count])
    except PydanticValidationError as e:
        raise MalformedResponseError(f"Invalid question descriptors: {e.error_count()} error(s)")

    if len(questions) < count:
        raise MalformedResponseError(f"Expected {count} questions, got {len(questions)}.")
    return questions
