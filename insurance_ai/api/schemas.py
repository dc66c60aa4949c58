"""
Pydantic schemas for API request/response validation.
"""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One message of the conversation as sent by the UI."""
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Request body for the policy chat endpoint."""
    messages: List[ChatMessage] = Field(..., min_length=1)

    class Config:
        json_schema_extra = {
            "example": {
                "messages": [
                    {"role": "user", "content": "Does my policy cover maternity?"}
                ]
            }
        }


class RecommendationRequest(BaseModel):
    """Request body for the recommendation endpoint."""
    user_id: str = Field(..., alias="userId", min_length=1)

    class Config:
        populate_by_name = True


class UploadResponse(BaseModel):
    storage_id: str = Field(..., alias="storageId")

    class Config:
        populate_by_name = True


class UploadUrlResponse(BaseModel):
    url: str


class CustomerPolicyUpload(BaseModel):
    """A customer's past policy document that has already been uploaded."""
    storage_id: str = Field(..., alias="storageId")
    name: str = Field(..., min_length=1)
    purchase_date: Optional[str] = Field(default=None, alias="purchaseDate")

    class Config:
        populate_by_name = True


class InsurerPolicyUpload(BaseModel):
    """An insurer's sellable policy document that has already been uploaded."""
    storage_id: str = Field(..., alias="storageId")
    name: str = Field(..., min_length=1)
    type: Optional[Literal["health", "auto", "home"]] = None
    premium: Optional[str] = None
    years: Optional[str] = None
    sum_insured: Optional[str] = Field(default=None, alias="sumInsured")

    class Config:
        populate_by_name = True


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    mongodb_connected: bool
    fireworks_configured: bool
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Error response shape."""
    detail: str
    details: Optional[str] = None
