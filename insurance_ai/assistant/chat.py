"""
Conversational policy Q&A (streaming profile).
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from insurance_ai.assistant.inquiries import InsurerInquiryService
from insurance_ai.assistant.orchestrator import CancellationToken, Orchestrator
from insurance_ai.assistant.tools import ChatToolContext, build_chat_registry
from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.gateway import ModelGateway
from insurance_ai.errors import ContextNotFoundError
from insurance_ai.prompts import CHAT_SYSTEM


logger = logging.getLogger(__name__)


class PolicyChatService:
    """Answers questions about one policy, escalating to the insurer on request."""

    def __init__(
        self,
        gateway: ModelGateway,
        store: DocumentStore,
        inquiries: InsurerInquiryService,
        max_steps: int = 12,
    ):
        self.gateway = gateway
        self.store = store
        self.inquiries = inquiries
        self.max_steps = max_steps

    def start(
        self,
        policy_id: str,
        messages: List[Dict[str, Any]],
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Iterator[str]:
        """
        Resolve the policy and customer, then return the answer's text stream.
        Context is resolved eagerly so a missing policy fails before streaming starts.

        Raises:
            ContextNotFoundError: no policy with policy_id
        """
        policy = self.store.get_policy(policy_id)
        if not policy:
            raise ContextNotFoundError(f"Policy {policy_id} not found")

        customer = self.store.get_customer_by_user_id(user_id) if user_id else None
        if customer is None:
            logger.info(f"No customer record for user {user_id}; contactInsurer will be unavailable")

        registry = build_chat_registry(ChatToolContext(
            gateway=self.gateway,
            store=self.store,
            inquiries=self.inquiries,
            policy=policy,
            customer=customer,
            user_email=user_email,
        ))
        orchestrator = Orchestrator(self.gateway, cancellation=cancellation)
        return orchestrator.stream(messages, CHAT_SYSTEM, registry, self.max_steps)
