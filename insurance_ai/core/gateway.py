"""
Model gateway interface.
The orchestration loop and extraction steps only talk to this interface, so tests
can inject a stub and production injects FireworksGateway.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Type

from pydantic import BaseModel

from insurance_ai.assistant.models import ModelTurn, StreamChunk


class ModelGateway(ABC):
    """Abstraction over a hosted chat-completions API."""

    @abstractmethod
    def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.2,
    ) -> ModelTurn:
        """Return either final text or the tool calls the model wants made."""

    @abstractmethod
    def stream(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.2,
    ) -> Iterator[StreamChunk]:
        """Yield text deltas, then one chunk carrying the assembled ModelTurn."""

    @abstractmethod
    def generate_json(
        self,
        messages: List[Dict[str, Any]],
        schema: Type[BaseModel],
        temperature: float = 0.1,
    ) -> Dict[str, Any]:
        """Return the model's JSON object for the given schema (not yet validated)."""

    @abstractmethod
    def document_part(self, url: str) -> Dict[str, Any]:
        """Message content part that attaches a PDF document by URL."""

    def document_message(self, url: str) -> Dict[str, Any]:
        """User message carrying only the document attachment."""
        return {"role": "user", "content": [self.document_part(url)]}
