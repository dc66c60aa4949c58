"""
Policy recommendation engine (batch profile).
"""

import json
import logging
from typing import Optional, Union

from insurance_ai.assistant.finalizer import finalize_recommendations
from insurance_ai.assistant.models import RecommendationSet
from insurance_ai.assistant.orchestrator import CancellationToken, Orchestrator
from insurance_ai.assistant.tools import RecommendationToolContext, build_recommendation_registry
from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.gateway import ModelGateway
from insurance_ai.errors import ContextNotFoundError
from insurance_ai.prompts import RECOMMENDATION_PROMPT, RECOMMENDATION_SYSTEM


logger = logging.getLogger(__name__)


class RecommendationService:
    """
    Recommends exactly three policies for a customer.
    The model may read any policy document through moreInfoAboutPolicy before answering.
    """

    def __init__(self, gateway: ModelGateway, store: DocumentStore, max_steps: int = 10):
        self.gateway = gateway
        self.store = store
        self.max_steps = max_steps

    def recommend(
        self,
        user_id: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> Union[RecommendationSet, str]:
        """
        Generate recommendations for the customer owned by user_id.

        Returns:
            RecommendationSet when the model's answer parses, otherwise the raw answer text

        Raises:
            ContextNotFoundError: no customer for user_id
        """
        logger.info(f"Fetching customer info for userId: {user_id}")
        customer = self.store.get_customer_by_user_id(user_id)
        if not customer:
            raise ContextNotFoundError("Customer not found")

        policies = self.store.list_policies()
        logger.info(f"Fetched {len(policies)} policies")

        prompt = RECOMMENDATION_PROMPT.format(
            customer_json=json.dumps(customer, indent=2, default=str),
            policies_json=json.dumps(policies, indent=2, default=str),
        )
        registry = build_recommendation_registry(RecommendationToolContext(gateway=self.gateway, store=self.store))
        orchestrator = Orchestrator(self.gateway, cancellation=cancellation)
        result = orchestrator.run(
            messages=[{"role": "user", "content": prompt}],
            system_prompt=RECOMMENDATION_SYSTEM,
            registry=registry,
            max_steps=self.max_steps,
        )
        logger.info(f"AI response received ({len(result.text)} chars, {len(result.invocations)} tool calls)")

        final = finalize_recommendations(result.text)
        if isinstance(final, RecommendationSet):
            self._save(customer["_id"], final)
        return final

    def _save(self, customer_id: str, recommendations: RecommendationSet) -> None:
        """Persist recommendations on the customer; failures are logged only."""
        try:
            self.store.update_recommended_policies(
                customer_id,
                [r.model_dump(by_alias=True) for r in recommendations.recommendations],
            )
        except Exception as e:
            logger.error(f"Failed to save recommendations for customer {customer_id}: {e}")
