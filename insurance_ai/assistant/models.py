"""
Pydantic models for the policy assistant.
These models define the data passed between the gateway, the orchestration loop,
the tools and the extraction / finalization steps.
"""

import json
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Gateway I/O
# ---------------------------------------------------------------------------

class ToolCall(BaseModel):
    """A tool invocation requested by the model."""
    id: str
    name: str
    arguments: str = Field(default="{}", description="Raw JSON arguments as produced by the model")

    def to_message_part(self) -> Dict[str, Any]:
        """OpenAI-format tool_calls entry."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class ModelTurn(BaseModel):
    """One gateway response: either final text or a set of tool calls."""
    text: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return not self.tool_calls

    def to_message(self) -> Dict[str, Any]:
        """Assistant message to append to the conversation history."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.text or ""}
        if self.tool_calls:
            message["tool_calls"] = [call.to_message_part() for call in self.tool_calls]
        return message


class StreamChunk(BaseModel):
    """
    A streamed gateway fragment.
    Text deltas arrive first; the last chunk of a response carries the assembled turn.
    """
    delta: Optional[str] = None
    turn: Optional[ModelTurn] = None


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class ToolInvocation(BaseModel):
    """A tool call after validation and execution."""
    call_id: str
    tool_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    ok: bool
    output: Any = None
    error: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        """Tool-result message fed back to the model."""
        if self.ok:
            content = self.output if isinstance(self.output, str) else _to_json(self.output)
        else:
            content = _to_json({"error": self.error})
        return {
            "role": "tool",
            "tool_call_id": self.call_id,
            "name": self.tool_name,
            "content": content,
        }


class OrchestrationResult(BaseModel):
    """Outcome of a batch orchestration run."""
    text: str
    messages: List[Dict[str, Any]]
    invocations: List[ToolInvocation] = Field(default_factory=list)
    gateway_calls: int = 0
    budget_exhausted: bool = False


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

class RecommendationResult(BaseModel):
    """A single recommended policy."""
    policy_id: str = Field(alias="policyId")
    confidence_score: Union[int, float] = Field(alias="confidenceScore", description="0-100, kept as the model wrote it")
    summary: str
    reasons: List[str] = Field(default_factory=list)
    benefits_for_customer: List[str] = Field(default_factory=list, alias="benefitsForCustomer")

    @field_validator("confidence_score")
    @classmethod
    def _in_range(cls, value):
        if not 0 <= value <= 100:
            raise ValueError("confidenceScore must be between 0 and 100")
        return value

    class Config:
        populate_by_name = True


class RecommendationSet(BaseModel):
    """The recommendation engine's structured output: exactly three policies."""
    recommendations: List[RecommendationResult] = Field(min_length=3, max_length=3)


# ---------------------------------------------------------------------------
# Structured extraction
# ---------------------------------------------------------------------------

def normalize_features(items: Any) -> Any:
    """
    Collapse the two shapes models return for feature lists
    (["a", "b"] or [{"feature": "a"}, ...]) into a list of strings.
    """
    if not isinstance(items, list):
        return items
    normalized = []
    for item in items:
        if isinstance(item, dict) and "feature" in item:
            normalized.append(item["feature"])
        else:
            normalized.append(item)
    return normalized


class FeatureExtraction(BaseModel):
    """Feature list extracted from an insurer's policy document."""
    features: List[str] = Field(description="List of policy features and benefits")

    @field_validator("features", mode="before")
    @classmethod
    def _normalize(cls, value):
        return normalize_features(value)


class PolicyExtraction(BaseModel):
    """Key fields extracted from a customer's uploaded policy document."""
    provider: str = Field(description="Insurance provider name")
    type: Literal["health", "auto", "home"] = Field(description="Type of insurance policy")
    sum_insured: str = Field(alias="sumInsured", description="Sum insured amount")
    premium: str = Field(description="Premium amount with frequency")
    expiry_date: str = Field(alias="expiryDate", description="Policy expiry date")
    features: List[str] = Field(default_factory=list, description="List of policy features")

    class Config:
        populate_by_name = True

    @field_validator("features", mode="before")
    @classmethod
    def _normalize(cls, value):
        return normalize_features(value)


class ExtractionFailure(BaseModel):
    """Returned instead of raising when extraction cannot produce a valid result."""
    error: str
    details: Optional[str] = None


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)
