import json
import re
import logging
from typing import Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from insurance_ai.assistant.models import RecommendationSet

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """
    Remove a markdown code fence (```json ... ``` or ``` ... ```) wrapping the whole text.
    Text that is not fenced is returned stripped but otherwise unchanged.
    """
    if not text:
        return ""
    match = _FENCE.match(text)
    if match:
        return match.group(1).strip()
    if "```" in text:
        # Fence somewhere inside prose: take the first fenced block
        inner = re.search(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL | re.IGNORECASE)
        if inner:
            return inner.group(1).strip()
    return text.strip()


def finalize(raw_text: str, schema: Type[T]) -> Union[T, str]:
    """
    Parse model output into schema, falling back to the raw text.
    Never raises on malformed output; the failure is logged with the raw text.
    """
    cleaned = strip_code_fence(raw_text)
    try:
        data = json.loads(cleaned)
        return schema.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Failed to parse {schema.__name__} from model output: {e}")
        logger.warning(f"Raw response content: {raw_text}")
        return raw_text


def finalize_recommendations(raw_text: str) -> Union[RecommendationSet, str]:
    """Recommendation engine output: {recommendations: [3 x RecommendationResult]} or raw text."""
    return finalize(raw_text, RecommendationSet)
