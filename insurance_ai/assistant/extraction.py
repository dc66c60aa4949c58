"""
Structured extraction from uploaded policy documents.
One model call per attempt (no tool loop); exactly one retry with a simplified
instruction; failures come back as ExtractionFailure instead of raising.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence, Type, Union

from pydantic import BaseModel

from insurance_ai.assistant.models import ExtractionFailure, FeatureExtraction, PolicyExtraction
from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.gateway import ModelGateway
from insurance_ai.core.retry import with_retry
from insurance_ai.prompts import (
    FEATURES_PROMPT,
    FEATURES_RETRY_PROMPT,
    FEATURES_RETRY_SYSTEM,
    FEATURES_SYSTEM,
    POLICY_EXTRACTION_PROMPT,
    POLICY_EXTRACTION_RETRY_PROMPT,
    POLICY_EXTRACTION_RETRY_SYSTEM,
    POLICY_EXTRACTION_SYSTEM,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionPrompt:
    """System instruction + user instruction for one extraction attempt."""
    system: str
    instruction: str


POLICY_PROMPTS = (
    ExtractionPrompt(POLICY_EXTRACTION_SYSTEM, POLICY_EXTRACTION_PROMPT),
    ExtractionPrompt(POLICY_EXTRACTION_RETRY_SYSTEM, POLICY_EXTRACTION_RETRY_PROMPT),
)

FEATURE_PROMPTS = (
    ExtractionPrompt(FEATURES_SYSTEM, FEATURES_PROMPT),
    ExtractionPrompt(FEATURES_RETRY_SYSTEM, FEATURES_RETRY_PROMPT),
)


class StructuredExtractor:
    """
    Extracts schema-shaped data from a policy PDF.
    Uses the model's JSON mode and validates the result with the Pydantic schema.
    """

    def __init__(self, gateway: ModelGateway, store: DocumentStore):
        """Initialize with model gateway and document store."""
        self.gateway = gateway
        self.store = store

    def _attempt(self, document_url: str, schema: Type[BaseModel], prompt: ExtractionPrompt) -> BaseModel:
        messages = [
            {"role": "system", "content": prompt.system},
            self.gateway.document_message(document_url),
            {"role": "user", "content": prompt.instruction},
        ]
        data = self.gateway.generate_json(messages=messages, schema=schema)
        return schema.model_validate(data)

    def extract(
        self,
        document_url: str,
        schema: Type[BaseModel],
        prompts: Sequence[ExtractionPrompt],
    ) -> Union[BaseModel, ExtractionFailure]:
        """
        Extract structured data from a document.

        Args:
            document_url: URL the model can download the PDF from
            schema: Pydantic model describing the expected fields
            prompts: Primary prompt followed by the simplified retry prompt

        Returns:
            A validated schema instance, or ExtractionFailure when every attempt failed
        """
        plans: Iterator[ExtractionPrompt] = iter(prompts)

        def attempt() -> BaseModel:
            prompt = next(plans)
            try:
                return self._attempt(document_url, schema, prompt)
            except Exception as e:
                logger.warning(f"{schema.__name__} extraction attempt failed: {e}")
                raise

        try:
            return with_retry(attempt, attempts=len(prompts))
        except Exception as e:
            logger.error(f"Error extracting {schema.__name__}: {e}")
            return ExtractionFailure(error=f"Failed to extract {_label(schema)}", details=str(e))

    def _document_url(self, storage_id: str) -> Union[str, ExtractionFailure]:
        url = self.store.get_download_url(storage_id)
        if not url:
            return ExtractionFailure(error="Could not generate URL for the document")
        return url

    def extract_policy(self, storage_id: str) -> Union[PolicyExtraction, ExtractionFailure]:
        """Provider, type, sum insured, premium, expiry date and features of a customer's policy."""
        url = self._document_url(storage_id)
        if isinstance(url, ExtractionFailure):
            return url
        return self.extract(url, PolicyExtraction, POLICY_PROMPTS)

    def extract_features(self, storage_id: str) -> Union[FeatureExtraction, ExtractionFailure]:
        """Key features and benefits of an insurer's policy."""
        url = self._document_url(storage_id)
        if isinstance(url, ExtractionFailure):
            return url
        return self.extract(url, FeatureExtraction, FEATURE_PROMPTS)


def _label(schema: Type[BaseModel]) -> str:
    labels = {PolicyExtraction: "policy details", FeatureExtraction: "policy features"}
    return labels.get(schema, schema.__name__)
