"""
Policy assistant components.
"""

from .models import (
    ToolCall,
    ModelTurn,
    StreamChunk,
    ToolInvocation,
    OrchestrationResult,
    RecommendationResult,
    RecommendationSet,
    FeatureExtraction,
    PolicyExtraction,
    ExtractionFailure,
)

__all__ = [
    "ToolCall",
    "ModelTurn",
    "StreamChunk",
    "ToolInvocation",
    "OrchestrationResult",
    "RecommendationResult",
    "RecommendationSet",
    "FeatureExtraction",
    "PolicyExtraction",
    "ExtractionFailure",
]
