"""Schemas for API key management."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

from discovery_api.core.roles import normalize_role


class APIKeyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Label for the API key")
    role: str = Field(..., description="Role: viewer, operator, manager or admin")

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        return normalize_role(v)


class APIKeyResponse(BaseModel):
    """API key (safe fields only)."""
    id: int
    name: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None
    key_masked: Optional[str] = None


class APIKeyCreateResponse(APIKeyResponse):
    """Returned once on creation, includes the raw key."""
    key: str


class APIKeyListResponse(BaseModel):
    items: List[APIKeyResponse]
    total: int


class CurrentClientResponse(BaseModel):
    source: str
    role: str
    api_key_id: Optional[int] = None
    is_admin: bool
