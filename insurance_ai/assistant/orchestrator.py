"""
Orchestration loop.
Drives the model through bounded rounds of tool calls until it produces a final answer.
"""

import logging
import threading
from typing import Any, Dict, Iterator, List, Optional

from insurance_ai.assistant.models import ModelTurn, OrchestrationResult, ToolInvocation
from insurance_ai.assistant.tools import ToolRegistry
from insurance_ai.core.gateway import ModelGateway
from insurance_ai.errors import ModelGatewayError, OrchestrationCancelled


logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag checked between loop steps."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OrchestrationCancelled("Orchestration was cancelled")


class Orchestrator:
    """
    Runs the tool-calling loop against a model gateway.

    Two profiles share the same loop:
    - run(): batch, the final text is returned in full
    - stream(): text deltas are forwarded as they arrive; tool rounds happen between segments
    """

    def __init__(
        self,
        gateway: ModelGateway,
        cancellation: Optional[CancellationToken] = None,
        temperature: float = 0.2,
    ):
        """
        Initialize the orchestrator.

        Args:
            gateway: Model gateway used for every round
            cancellation: Optional token; checked before each gateway call and tool execution
            temperature: Sampling temperature for every round
        """
        self.gateway = gateway
        self.cancellation = cancellation or CancellationToken()
        self.temperature = temperature

    @staticmethod
    def _initial_history(messages: List[Dict[str, Any]], system_prompt: Optional[str]) -> List[Dict[str, Any]]:
        history: List[Dict[str, Any]] = []
        if system_prompt:
            history.append({"role": "system", "content": system_prompt})
        history.extend(messages)
        return history

    def _execute_tool_calls(
        self,
        history: List[Dict[str, Any]],
        turn: ModelTurn,
        registry: ToolRegistry,
    ) -> List[ToolInvocation]:
        """
        Append the tool-call message, then run each call in order and append its result.
        Every name is resolved before anything runs, so an unknown tool aborts the whole round.
        """
        for call in turn.tool_calls:
            registry.resolve(call.name)

        history.append(turn.to_message())
        invocations = []
        for call in turn.tool_calls:
            self.cancellation.raise_if_cancelled()
            logger.info(f"Calling tool {call.name}")
            invocation = registry.invoke(call)
            if not invocation.ok:
                logger.info(f"Tool {call.name} returned an error: {invocation.error}")
            history.append(invocation.to_message())
            invocations.append(invocation)
        return invocations

    def run(
        self,
        messages: List[Dict[str, Any]],
        system_prompt: Optional[str],
        registry: ToolRegistry,
        max_steps: int,
    ) -> OrchestrationResult:
        """
        Batch profile.

        Args:
            messages: Conversation so far (OpenAI format)
            system_prompt: Optional system prompt placed first
            registry: Tools available for this request
            max_steps: Maximum gateway round-trips

        Returns:
            OrchestrationResult; when the budget runs out, text is the last text the model produced

        Raises:
            ModelGatewayError: a gateway call failed
            UnknownToolError: the model asked for a tool outside the registry
            OrchestrationCancelled: the token was cancelled
        """
        history = self._initial_history(messages, system_prompt)
        tools = registry.specs()
        invocations: List[ToolInvocation] = []
        last_text = ""
        gateway_calls = 0

        for step in range(max_steps):
            self.cancellation.raise_if_cancelled()
            turn = self.gateway.complete(history, tools=tools, temperature=self.temperature)
            gateway_calls += 1
            if turn.text:
                last_text = turn.text

            if turn.is_final:
                logger.info(f"Model answered after {gateway_calls} call(s) and {len(invocations)} tool call(s)")
                history.append(turn.to_message())
                return OrchestrationResult(
                    text=turn.text or "",
                    messages=history,
                    invocations=invocations,
                    gateway_calls=gateway_calls,
                )

            invocations.extend(self._execute_tool_calls(history, turn, registry))

        logger.warning(f"Step budget of {max_steps} exhausted; returning last model text")
        return OrchestrationResult(
            text=last_text,
            messages=history,
            invocations=invocations,
            gateway_calls=gateway_calls,
            budget_exhausted=True,
        )

    def stream(
        self,
        messages: List[Dict[str, Any]],
        system_prompt: Optional[str],
        registry: ToolRegistry,
        max_steps: int,
    ) -> Iterator[str]:
        """
        Streaming profile: yields text deltas of every round.
        Raises the same errors as run(), possibly after some text was yielded.
        """
        history = self._initial_history(messages, system_prompt)
        tools = registry.specs()

        for step in range(max_steps):
            self.cancellation.raise_if_cancelled()
            turn: Optional[ModelTurn] = None
            for chunk in self.gateway.stream(history, tools=tools, temperature=self.temperature):
                self.cancellation.raise_if_cancelled()
                if chunk.delta:
                    yield chunk.delta
                if chunk.turn is not None:
                    turn = chunk.turn

            if turn is None:
                raise ModelGatewayError("Stream ended without a final response")
            if turn.is_final:
                return

            self._execute_tool_calls(history, turn, registry)

        logger.warning(f"Step budget of {max_steps} exhausted while streaming")
