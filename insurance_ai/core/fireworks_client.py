"""
Fireworks AI client for chat, tool calling, streaming and structured output.
Provides the production ModelGateway with retry logic on transport failures.
"""

import json
import logging
from typing import Any, Dict, Iterator, List, Optional, Type
from pydantic import BaseModel
from tenacity import wait_exponential

from fireworks.client import Fireworks

from insurance_ai.config import Settings
from insurance_ai.errors import ModelGatewayError
from insurance_ai.assistant.models import ModelTurn, StreamChunk, ToolCall
from insurance_ai.core.gateway import ModelGateway
from insurance_ai.core.retry import with_retry


logger = logging.getLogger(__name__)


class FireworksGateway(ModelGateway):
    """
    Wrapper for Fireworks AI API with tool calling and structured output support.
    """

    def __init__(self, settings: Settings, client: Optional[Fireworks] = None):
        """
        Initialize the gateway.

        Args:
            settings: Application settings (API key, models, timeouts)
            client: Optional pre-built Fireworks client
        """
        self.client = client or Fireworks(api_key=settings.fireworks_api_key)
        self.llm_model = settings.fireworks_llm_model
        self.document_model = settings.fireworks_document_model
        self.timeout = settings.llm_timeout_seconds
        self.max_attempts = settings.llm_max_attempts

    def _create(self, **kwargs):
        """Call chat.completions.create with transport retries and an explicit timeout."""
        try:
            return with_retry(
                lambda: self.client.chat.completions.create(
                    request_timeout=self.timeout,
                    **kwargs,
                ),
                attempts=self.max_attempts,
                backoff=wait_exponential(multiplier=2, min=2, max=30),
            )
        except Exception as e:
            raise ModelGatewayError(f"Fireworks request failed: {e}") from e

    def _model_for(self, messages: List[Dict[str, Any]]) -> str:
        """Use the document model whenever a document part is attached."""
        for message in messages:
            content = message.get("content")
            if isinstance(content, list) and any(
                isinstance(part, dict) and part.get("type") == "image_url" for part in content
            ):
                return self.document_model
        return self.llm_model

    def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.2,
    ) -> ModelTurn:
        """
        Run one chat completion.

        Args:
            messages: OpenAI-format conversation history
            tools: Optional function specs
            temperature: Sampling temperature

        Returns:
            ModelTurn with text or tool calls
        """
        kwargs: Dict[str, Any] = {
            "model": self._model_for(messages),
            "messages": messages,
            "temperature": temperature,
        }
        if tools:
            kwargs["tools"] = tools

        response = self._create(**kwargs)
        message = response.choices[0].message

        calls = []
        for tc in getattr(message, "tool_calls", None) or []:
            calls.append(ToolCall(
                id=tc.id,
                name=tc.function.name,
                arguments=tc.function.arguments or "{}",
            ))

        return ModelTurn(text=message.content, tool_calls=calls)

    def stream(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.2,
    ) -> Iterator[StreamChunk]:
        """
        Stream one chat completion.
        Tool call fragments are accumulated by index and emitted with the final chunk.
        """
        kwargs: Dict[str, Any] = {
            "model": self._model_for(messages),
            "messages": messages,
            "temperature": temperature,
            "stream": True,
        }
        if tools:
            kwargs["tools"] = tools

        response = self._create(**kwargs)

        text_parts: List[str] = []
        pending: Dict[int, Dict[str, str]] = {}

        try:
            for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                content = getattr(delta, "content", None)
                if content:
                    text_parts.append(content)
                    yield StreamChunk(delta=content)
                for tc in getattr(delta, "tool_calls", None) or []:
                    slot = pending.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                    if tc.id:
                        slot["id"] = tc.id
                    if tc.function and tc.function.name:
                        slot["name"] = tc.function.name
                    if tc.function and tc.function.arguments:
                        slot["arguments"] += tc.function.arguments
        except Exception as e:
            raise ModelGatewayError(f"Fireworks stream failed: {e}") from e

        calls = [
            ToolCall(id=slot["id"] or f"call_{index}", name=slot["name"], arguments=slot["arguments"] or "{}")
            for index, slot in sorted(pending.items())
        ]
        yield StreamChunk(turn=ModelTurn(text="".join(text_parts) or None, tool_calls=calls))

    def generate_json(
        self,
        messages: List[Dict[str, Any]],
        schema: Type[BaseModel],
        temperature: float = 0.1,
    ) -> Dict[str, Any]:
        """
        Generate structured JSON output constrained by a Pydantic schema.

        Raises:
            ModelGatewayError: the request failed
            ValueError: the model did not return a JSON object
        """
        response = self._create(
            model=self._model_for(messages),
            messages=messages,
            temperature=temperature,
            response_format={
                "type": "json_object",
                "schema": schema.model_json_schema(by_alias=True),
            },
        )

        content = response.choices[0].message.content or ""
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    def document_part(self, url: str) -> Dict[str, Any]:
        """Fireworks document inlining: PDFs are attached as image_url with #transform=inline."""
        return {"type": "image_url", "image_url": {"url": f"{url}#transform=inline"}}
