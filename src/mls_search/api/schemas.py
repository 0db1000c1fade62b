"""
Pydantic Schemas for API Request/Response Models

These schemas define the JSON structure for API endpoints.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class SearchResponse(BaseModel):
    """Search results envelope."""
    success: bool = True
    data: List[Dict[str, Any]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Failed request envelope."""
    success: bool = False
    message: str
    error: Optional[str] = None


class LocationMatchRequest(BaseModel):
    """Location text to resolve."""
    location: str


class LocationFilterPreview(BaseModel):
    """How a search would constrain location for a given input."""
    description: str
    sql: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)


class LocationMatchResponse(BaseModel):
    """Resolution result and the location filter it produces."""
    success: bool = True
    input: str
    match_result: Dict[str, Any]
    suggested_filter: LocationFilterPreview


class HealthCheck(BaseModel):
    """Health check response."""
    status: str
    version: str
    database: str
    geography_cache_loaded: bool
    timestamp: datetime
