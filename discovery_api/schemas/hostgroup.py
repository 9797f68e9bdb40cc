"""Schemas for host groups and taxonomies."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class HostgroupCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    operatingsystem: Optional[str] = Field(None, max_length=255, description="e.g. 'RedHat 9.2'")
    architecture: Optional[str] = Field("x86_64", max_length=50)
    domain: Optional[str] = Field(None, max_length=255)
    root_pass: Optional[str] = Field(None, max_length=255)
    kernel_url: Optional[str] = Field(None, max_length=500)
    initrd_url: Optional[str] = Field(None, max_length=500)
    kernel_append: Optional[str] = None


class HostgroupResponse(BaseModel):
    """Host group (root password is never returned)."""
    id: int
    name: str
    operatingsystem: Optional[str] = None
    architecture: Optional[str] = None
    domain: Optional[str] = None
    kernel_url: Optional[str] = None
    initrd_url: Optional[str] = None
    kernel_append: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class HostgroupListResponse(BaseModel):
    items: List[HostgroupResponse]
    total: int


class TaxonomyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class TaxonomyResponse(BaseModel):
    id: int
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TaxonomyListResponse(BaseModel):
    items: List[TaxonomyResponse]
    total: int
