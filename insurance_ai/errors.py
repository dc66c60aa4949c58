"""
Exception hierarchy shared by the assistant, core services and API layer.
"""


class InsuranceAIError(Exception):
    """Base class for all service errors."""


class ContextNotFoundError(InsuranceAIError):
    """A record required before orchestration could start does not exist."""


class ModelGatewayError(InsuranceAIError):
    """The LLM provider call itself failed (auth, quota, network, timeout)."""


class UnknownToolError(InsuranceAIError):
    """The model requested a tool that is not in the request's registry."""

    def __init__(self, tool_name: str):
        super().__init__(f"Model requested unknown tool: {tool_name}")
        self.tool_name = tool_name


class OrchestrationCancelled(InsuranceAIError):
    """The caller cancelled the orchestration loop."""


class EmailDeliveryError(InsuranceAIError):
    """Email could not be delivered after all attempts."""


class DocumentStoreError(InsuranceAIError):
    """A document store query or mutation failed."""
