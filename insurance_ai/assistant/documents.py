"""
Free-form questions against a stored policy document.
Used by the getInfoAboutPolicy and moreInfoAboutPolicy tools.
"""

import logging

from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.gateway import ModelGateway
from insurance_ai.errors import DocumentStoreError


logger = logging.getLogger(__name__)


def ask_policy_document(
    gateway: ModelGateway,
    store: DocumentStore,
    storage_id: str,
    prompt: str,
) -> str:
    """
    Attach the policy PDF and ask the model a question about it.

    Args:
        gateway: Model gateway
        store: Document store holding the file
        storage_id: Storage id of the policy document
        prompt: Question about the document

    Returns:
        The model's answer text

    Raises:
        DocumentStoreError: no download URL exists for storage_id
    """
    url = store.get_download_url(storage_id)
    if not url:
        raise DocumentStoreError("Failed to generate URL for policy document")

    logger.info(f"Reading policy document {storage_id}: {prompt}")
    turn = gateway.complete(
        messages=[
            gateway.document_message(url),
            {"role": "user", "content": prompt},
        ],
    )
    return turn.text or ""
