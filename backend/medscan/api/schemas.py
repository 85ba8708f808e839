"""
API Schemas

Request and response models of the medicine endpoints.
"""

from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field


class AnalyzeRequest(BaseModel):
    """Medicine analysis request."""
    image_data: Optional[str] = None  # base64 or data URL
    text_query: Optional[str] = None
    user_id: Optional[str] = None


class AnalyzeResponse(BaseModel):
    """Medicine analysis result."""
    status: str  # SUCCESS, ERROR, INSUFFICIENT_TOKENS, SERVICE_UNAVAILABLE
    data: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    tokensRemaining: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)


class MedicineSuggestion(BaseModel):
    """Registry search hit."""
    id: str
    registration_number: str
    product_name: str
    status: str


class SearchResponse(BaseModel):
    """Registry search results."""
    query: str
    count: int
    results: List[MedicineSuggestion] = Field(default_factory=list)


class TokenStatusResponse(BaseModel):
    """Token availability of a user."""
    user_id: str
    available: bool
    reason: str
    balance: Optional[int] = None


class HealthResponse(BaseModel):
    """Service health."""
    status: str  # healthy, degraded
    model: str
    registry_records: Optional[int] = None
    registry_error: Optional[str] = None
