"""
Tool registry for the orchestration loop.

Tools are a closed set (ToolKind). Each kind has a strict argument model, which
doubles as the JSON schema sent to the model, and an execution function that
closes over the request-scoped context it needs. Registries are built per request.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel, Field, ValidationError

from insurance_ai.assistant.documents import ask_policy_document
from insurance_ai.assistant.inquiries import InsurerInquiryService
from insurance_ai.assistant.models import ToolCall, ToolInvocation
from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.gateway import ModelGateway
from insurance_ai.errors import UnknownToolError


logger = logging.getLogger(__name__)

CUSTOMER_NOT_FOUND_MESSAGE = "Customer information could not be found. Please try again later."


class ToolKind(str, Enum):
    GET_INFO_ABOUT_POLICY = "getInfoAboutPolicy"
    CONTACT_INSURER = "contactInsurer"
    MORE_INFO_ABOUT_POLICY = "moreInfoAboutPolicy"


# -------- Argument models ------------------------------------------------------

class ToolArgs(BaseModel):
    """Base for tool arguments: no coercion, no unknown keys."""

    class Config:
        extra = "forbid"
        strict = True
        populate_by_name = True


class PolicyQuestionArgs(ToolArgs):
    prompt: str = Field(description="Ask about context here.")


class ContactInsurerArgs(ToolArgs):
    subject: str = Field(description="Brief subject line for the email")
    message: str = Field(description="The detailed question or issue that needs to be addressed by the insurer")
    customer_phone: Optional[str] = Field(
        default=None,
        alias="customerPhone",
        description="Customer's phone number if they want to be contacted by phone",
    )


class PolicyDocumentQuestionArgs(ToolArgs):
    storage_id: str = Field(
        alias="storageId",
        description="Id of the storage present in the object of that policy in storageId field",
    )
    prompt: str = Field(description="What specific info do you want from the document?")


# -------- Definitions and registry ---------------------------------------------

def _tool_spec(name: str, description: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
    """Build an OpenAI function spec."""

    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": parameters.get("properties", {}),
                "required": parameters.get("required", []),
                "additionalProperties": False,
            },
        },
    }


@dataclass(frozen=True)
class ToolDefinition:
    kind: ToolKind
    description: str
    args_model: Type[ToolArgs]
    execute: Callable[[Any], Any]

    def spec(self) -> Dict[str, Any]:
        return _tool_spec(
            self.kind.value,
            self.description,
            self.args_model.model_json_schema(by_alias=True),
        )


class ToolRegistry:
    """The fixed set of tools available to the model for one request."""

    def __init__(self, tools: Iterable[ToolDefinition]):
        self._tools: Dict[ToolKind, ToolDefinition] = {tool.kind: tool for tool in tools}

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def kinds(self) -> List[ToolKind]:
        return list(self._tools)

    def specs(self) -> List[Dict[str, Any]]:
        return [tool.spec() for tool in self._tools.values()]

    def resolve(self, name: str) -> ToolDefinition:
        """
        Look up a tool by the name the model used.

        Raises:
            UnknownToolError: the name is not a ToolKind or not registered for this request
        """
        try:
            kind = ToolKind(name)
        except ValueError:
            raise UnknownToolError(name)
        tool = self._tools.get(kind)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def invoke(self, call: ToolCall) -> ToolInvocation:
        """
        Validate and execute one tool call.
        Validation and execution failures become error invocations; unknown tools raise.
        """
        tool = self.resolve(call.name)

        try:
            args = tool.args_model.model_validate_json(call.arguments)
        except ValidationError as e:
            logger.warning(f"Invalid arguments for {call.name}: {e}")
            return ToolInvocation(
                call_id=call.id,
                tool_name=call.name,
                arguments=_raw_arguments(call.arguments),
                ok=False,
                error=f"Invalid arguments for {call.name}: {e}",
            )

        arguments = args.model_dump(by_alias=True, exclude_none=True)
        try:
            output = tool.execute(args)
        except Exception as e:
            logger.warning(f"Tool {call.name} failed: {e}")
            return ToolInvocation(call_id=call.id, tool_name=call.name, arguments=arguments, ok=False, error=str(e))

        return ToolInvocation(call_id=call.id, tool_name=call.name, arguments=arguments, ok=True, output=output)


def _raw_arguments(raw: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {"raw": raw}
    return parsed if isinstance(parsed, dict) else {"raw": parsed}


# -------- Per-request builders -------------------------------------------------

@dataclass
class ChatToolContext:
    """Request-scoped context for the conversational assistant."""
    gateway: ModelGateway
    store: DocumentStore
    inquiries: InsurerInquiryService
    policy: Dict[str, Any]
    customer: Optional[Dict[str, Any]] = None
    user_email: Optional[str] = None


@dataclass
class RecommendationToolContext:
    """Request-scoped context for the recommendation engine."""
    gateway: ModelGateway
    store: DocumentStore


def build_chat_registry(context: ChatToolContext) -> ToolRegistry:
    """getInfoAboutPolicy + contactInsurer, bound to one policy and one customer."""
    gateway, store = context.gateway, context.store
    inquiries = context.inquiries
    policy_id = context.policy["_id"]
    storage_id = context.policy["storageId"]
    customer = context.customer
    customer_email = context.user_email or (customer or {}).get("email", "")

    def get_info_about_policy(args: PolicyQuestionArgs) -> str:
        return ask_policy_document(gateway, store, storage_id, args.prompt)

    def contact_insurer(args: ContactInsurerArgs) -> Dict[str, Any]:
        if not customer:
            return {"success": False, "message": CUSTOMER_NOT_FOUND_MESSAGE}
        return inquiries.send_inquiry(
            policy_id=policy_id,
            customer_name=customer["name"],
            customer_email=customer_email,
            customer_phone=args.customer_phone,
            subject=args.subject,
            message=args.message,
        )

    return ToolRegistry([
        ToolDefinition(
            kind=ToolKind.GET_INFO_ABOUT_POLICY,
            description="You can ask for any info about the policy. This is like a smart context provider like RAG.",
            args_model=PolicyQuestionArgs,
            execute=get_info_about_policy,
        ),
        ToolDefinition(
            kind=ToolKind.CONTACT_INSURER,
            description=(
                "Use this tool when the user wants to contact their insurer directly "
                "about a question that requires human assistance."
            ),
            args_model=ContactInsurerArgs,
            execute=contact_insurer,
        ),
    ])


def build_recommendation_registry(context: RecommendationToolContext) -> ToolRegistry:
    """moreInfoAboutPolicy: ask any stored policy document a question."""
    gateway, store = context.gateway, context.store

    def more_info_about_policy(args: PolicyDocumentQuestionArgs) -> str:
        logger.info(f"Getting more info about policy with storageId: {args.storage_id}")
        return ask_policy_document(gateway, store, args.storage_id, args.prompt)

    return ToolRegistry([
        ToolDefinition(
            kind=ToolKind.MORE_INFO_ABOUT_POLICY,
            description="Get more info about a policy",
            args_model=PolicyDocumentQuestionArgs,
            execute=more_info_about_policy,
        ),
    ])
