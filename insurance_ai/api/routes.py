"""
API routes for the policy assistant.
"""

import logging
from datetime import datetime, timezone
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse

from insurance_ai import __version__
from insurance_ai.api.dependencies import (
    get_chat_service,
    get_document_store,
    get_recommendation_service,
    get_upload_service,
)
from insurance_ai.api.schemas import (
    ChatRequest,
    CustomerPolicyUpload,
    ErrorResponse,
    HealthResponse,
    InsurerPolicyUpload,
    RecommendationRequest,
    UploadResponse,
    UploadUrlResponse,
)
from insurance_ai.assistant.chat import PolicyChatService
from insurance_ai.assistant.models import ExtractionFailure, RecommendationSet
from insurance_ai.assistant.orchestrator import CancellationToken
from insurance_ai.assistant.recommendations import RecommendationService
from insurance_ai.assistant.uploads import PolicyUploadService
from insurance_ai.config import Settings, get_settings
from insurance_ai.core.document_store import DocumentStore
from insurance_ai.errors import (
    ContextNotFoundError,
    ModelGatewayError,
    OrchestrationCancelled,
    UnknownToolError,
)


logger = logging.getLogger(__name__)
router = APIRouter()

STREAM_ERROR_MESSAGE = "\n\nSorry, something went wrong while answering your question. Please try again."


@router.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check(
    store: DocumentStore = Depends(get_document_store),
    settings: Settings = Depends(get_settings),
):
    """
    Check the health status of the API and its dependencies.
    """
    mongodb_connected = store.ping()
    fireworks_configured = bool(settings.fireworks_api_key and
                                settings.fireworks_api_key != "your_fireworks_api_key_here")

    return HealthResponse(
        status="healthy" if mongodb_connected and fireworks_configured else "degraded",
        version=__version__,
        mongodb_connected=mongodb_connected,
        fireworks_configured=fireworks_configured,
        timestamp=datetime.now(timezone.utc),
    )


def _stream_answer(chunks: Iterator[str], token: CancellationToken, policy_id: str) -> Iterator[str]:
    """Forward answer text; failures after the stream started become a readable last line."""
    try:
        yield from chunks
    except OrchestrationCancelled:
        logger.info(f"Chat for policy {policy_id} cancelled")
    except (ModelGatewayError, UnknownToolError) as e:
        logger.error(f"Chat for policy {policy_id} failed: {e}")
        yield STREAM_ERROR_MESSAGE
    except Exception as e:
        logger.exception(f"Unexpected error while streaming chat for policy {policy_id}: {e}")
        yield STREAM_ERROR_MESSAGE
    finally:
        # Client disconnects close the generator; stop any work still in flight
        token.cancel()


@router.post(
    "/api/chat",
    tags=["Chat"],
    summary="Ask about a policy",
    description="Stream an answer about the policy named in X-PolicyId",
    responses={404: {"model": ErrorResponse}},
)
def chat(
    request: ChatRequest,
    policy_id: Optional[str] = Header(default=None, alias="X-PolicyId"),
    user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    user_email: Optional[str] = Header(default=None, alias="X-User-Email"),
    service: PolicyChatService = Depends(get_chat_service),
):
    """
    Conversational Q&A about one policy.
    The answer is streamed as plain text while the model works through its tool calls.
    """
    if not policy_id:
        raise HTTPException(status_code=400, detail="Missing X-PolicyId header")

    token = CancellationToken()
    try:
        chunks = service.start(
            policy_id,
            [m.model_dump() for m in request.messages],
            user_id=user_id,
            user_email=user_email,
            cancellation=token,
        )
    except ContextNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return StreamingResponse(
        _stream_answer(chunks, token, policy_id),
        media_type="text/plain; charset=utf-8",
        headers={"X-PolicyId": policy_id},
    )


@router.post(
    "/api/insurance-agent",
    tags=["Recommendations"],
    summary="Recommend policies",
    description="Recommend exactly three policies for a customer",
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def insurance_agent(
    request: RecommendationRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """
    Returns {recommendations: [...]} as JSON, or the model's raw answer as
    plain text when it could not be parsed.
    """
    try:
        result = service.recommend(request.user_id)
    except ContextNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ModelGatewayError, UnknownToolError) as e:
        logger.error(f"Recommendation for user {request.user_id} failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to generate recommendations")

    if isinstance(result, RecommendationSet):
        return JSONResponse(content=result.model_dump(by_alias=True))
    return PlainTextResponse(content=result)


@router.post("/api/files", response_model=UploadResponse, tags=["Files"], summary="Upload a policy document")
def upload_file(
    file: UploadFile = File(...),
    store: DocumentStore = Depends(get_document_store),
):
    """Store an uploaded document and return its storage id."""
    data = file.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    storage_id = store.save_file(
        data,
        filename=file.filename or "document.pdf",
        content_type=file.content_type or "application/pdf",
    )
    logger.info(f"Stored {file.filename} ({len(data)} bytes) as {storage_id}")
    return UploadResponse(storage_id=storage_id)


@router.get("/api/files/upload-url", response_model=UploadUrlResponse, tags=["Files"])
def upload_url(store: DocumentStore = Depends(get_document_store)):
    return UploadUrlResponse(url=store.get_upload_url())


@router.get("/api/files/{storage_id}", tags=["Files"], responses={404: {"model": ErrorResponse}})
def download_file(storage_id: str, store: DocumentStore = Depends(get_document_store)):
    """Serve a stored document. This is the URL handed to the model."""
    grid_out = store.open_file(storage_id)
    if grid_out is None:
        raise HTTPException(status_code=404, detail=f"File {storage_id} not found")

    return Response(
        content=grid_out.read(),
        media_type=grid_out.content_type or "application/pdf",
        headers={"Content-Disposition": f'inline; filename="{grid_out.filename}"'},
    )


def _extraction_failed(failure: ExtractionFailure) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": failure.error, "details": failure.details},
    )


@router.post(
    "/api/customers/{user_id}/policies",
    tags=["Policies"],
    summary="Add a past policy",
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def add_customer_policy(
    user_id: str,
    body: CustomerPolicyUpload,
    service: PolicyUploadService = Depends(get_upload_service),
):
    """Extract an uploaded policy document and append it to the customer's past policies."""
    try:
        result = service.add_customer_policy(
            user_id,
            storage_id=body.storage_id,
            name=body.name,
            purchase_date=body.purchase_date,
        )
    except ContextNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if isinstance(result, ExtractionFailure):
        return _extraction_failed(result)
    return result


@router.post(
    "/api/insurers/{user_id}/policies",
    tags=["Policies"],
    summary="Publish an insurer policy",
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def add_insurer_policy(
    user_id: str,
    body: InsurerPolicyUpload,
    service: PolicyUploadService = Depends(get_upload_service),
):
    """Extract features from an insurer's policy document and add the policy."""
    try:
        result = service.add_insurer_policy(
            user_id,
            storage_id=body.storage_id,
            name=body.name,
            policy_type=body.type,
            premium=body.premium,
            years=body.years,
            sum_insured=body.sum_insured,
        )
    except ContextNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if isinstance(result, ExtractionFailure):
        return _extraction_failed(result)
    return result
