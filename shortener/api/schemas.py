"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Design Principles:
- Request models: Define input shape only; URL validation lives in the
  service so that malformed URLs are reported as 400, not 422
- Response models: Define output structure
"""

from typing import Optional

from pydantic import BaseModel, Field


class ShortenRequest(BaseModel):
    """Request model for URL shortening endpoint."""
    url: Optional[str] = Field(None, description="The absolute http(s) URL to shorten")


class ShortenResponse(BaseModel):
    """Response model for URL shortening endpoint."""
    original_url: str = Field(..., description="The original long URL")
    short_url: str = Field(..., description="The complete short URL")
    short_code: str = Field(..., description="The generated short code")


class StatsResponse(BaseModel):
    """Response model for statistics endpoint."""
    short_code: str
    original_url: str
    created_at: str = Field(..., description="ISO-8601 creation timestamp (UTC)")
    clicks: int = Field(..., ge=0)
