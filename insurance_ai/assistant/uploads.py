"""
Policy upload flows.
Customers upload past policies (full extraction); insurers upload sellable policies
(feature extraction, the rest is entered by the insurer).
"""

import logging
from typing import Any, Dict, Optional, Union

from insurance_ai.assistant.extraction import StructuredExtractor
from insurance_ai.assistant.models import ExtractionFailure
from insurance_ai.core.document_store import DocumentStore
from insurance_ai.errors import ContextNotFoundError


logger = logging.getLogger(__name__)


class PolicyUploadService:
    def __init__(self, store: DocumentStore, extractor: StructuredExtractor):
        self.store = store
        self.extractor = extractor

    def add_customer_policy(
        self,
        user_id: str,
        storage_id: str,
        name: str,
        purchase_date: Optional[str] = None,
    ) -> Union[Dict[str, Any], ExtractionFailure]:
        """
        Extract an uploaded past policy and append it to the customer's record.

        Raises:
            ContextNotFoundError: no customer for user_id
        """
        customer = self.store.get_customer_by_user_id(user_id)
        if not customer:
            raise ContextNotFoundError("Customer not found")

        extracted = self.extractor.extract_policy(storage_id)
        if isinstance(extracted, ExtractionFailure):
            return extracted

        policy = {"name": name, "storageId": storage_id, **extracted.model_dump(by_alias=True)}
        if purchase_date:
            policy["purchaseDate"] = purchase_date

        logger.info(f"Adding past policy '{name}' for customer {customer['_id']}")
        return self.store.add_past_policy(customer["_id"], policy)

    def add_insurer_policy(
        self,
        user_id: str,
        storage_id: str,
        name: str,
        policy_type: Optional[str] = None,
        premium: Optional[str] = None,
        years: Optional[str] = None,
        sum_insured: Optional[str] = None,
    ) -> Union[Dict[str, Any], ExtractionFailure]:
        """
        Extract features from an insurer's policy document and publish the policy.

        Raises:
            ContextNotFoundError: no insurer for user_id
        """
        insurer = self.store.get_insurer_by_user_id(user_id)
        if not insurer:
            raise ContextNotFoundError("Insurer not found")

        extracted = self.extractor.extract_features(storage_id)
        if isinstance(extracted, ExtractionFailure):
            return extracted

        policy_id = self.store.add_policy(insurer["_id"], {
            "name": name,
            "storageId": storage_id,
            "type": policy_type,
            "premium": premium,
            "years": years,
            "sumInsured": sum_insured,
            "features": extracted.features,
            "provider": insurer.get("companyName"),
        })
        return {"policyId": policy_id, "features": extracted.features}
