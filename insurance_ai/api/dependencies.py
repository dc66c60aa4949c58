"""
Service providers for the API routes.
Each provider is cached so one instance is shared per process; tests replace them
through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends

from insurance_ai.assistant.chat import PolicyChatService
from insurance_ai.assistant.extraction import StructuredExtractor
from insurance_ai.assistant.inquiries import InsurerInquiryService
from insurance_ai.assistant.recommendations import RecommendationService
from insurance_ai.assistant.uploads import PolicyUploadService
from insurance_ai.config import Settings, get_settings
from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.email_service import EmailService
from insurance_ai.core.fireworks_client import FireworksGateway
from insurance_ai.core.gateway import ModelGateway


@lru_cache()
def get_gateway() -> ModelGateway:
    return FireworksGateway(get_settings())


@lru_cache()
def get_document_store() -> DocumentStore:
    return DocumentStore.from_settings(get_settings())


@lru_cache()
def get_email_service() -> EmailService:
    return EmailService(get_settings())


def get_chat_service(
    gateway: ModelGateway = Depends(get_gateway),
    store: DocumentStore = Depends(get_document_store),
    notifier: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_settings),
) -> PolicyChatService:
    inquiries = InsurerInquiryService(store, notifier, app_name=settings.app_name)
    return PolicyChatService(gateway, store, inquiries, max_steps=settings.chat_max_steps)


def get_recommendation_service(
    gateway: ModelGateway = Depends(get_gateway),
    store: DocumentStore = Depends(get_document_store),
    settings: Settings = Depends(get_settings),
) -> RecommendationService:
    return RecommendationService(gateway, store, max_steps=settings.recommendation_max_steps)


def get_upload_service(
    gateway: ModelGateway = Depends(get_gateway),
    store: DocumentStore = Depends(get_document_store),
) -> PolicyUploadService:
    return PolicyUploadService(store, StructuredExtractor(gateway, store))
