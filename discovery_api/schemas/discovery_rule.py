"""Schemas for discovery rule management."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

from discovery_api.core.exceptions import InvalidSearchError
from discovery_api.utils.search_query import validate_search


def _check_search(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    try:
        return validate_search(v)
    except InvalidSearchError as e:
        raise ValueError(e.message)


class DiscoveryRuleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    search: str = Field("", description="Search predicate over host facts, e.g. 'facts.somefact = abc'")
    hostname: Optional[str] = Field(
        None, max_length=255, description="Hostname template, e.g. 'node-{rand}' or '{facts[serial]}'"
    )
    hostgroup_id: int
    priority: int = Field(0, ge=0, description="Lower values are evaluated first")
    max_count: int = Field(0, ge=0, description="Maximum hosts provisioned by this rule, 0 for unlimited")
    enabled: bool = True
    organization_ids: List[int] = Field(default_factory=list)
    location_ids: List[int] = Field(default_factory=list)

    @field_validator("search")
    @classmethod
    def validate_search_query(cls, v: str) -> str:
        return _check_search(v)


class DiscoveryRuleUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    search: Optional[str] = None
    hostname: Optional[str] = Field(None, max_length=255)
    hostgroup_id: Optional[int] = None
    priority: Optional[int] = Field(None, ge=0)
    max_count: Optional[int] = Field(None, ge=0)
    enabled: Optional[bool] = None
    organization_ids: Optional[List[int]] = None
    location_ids: Optional[List[int]] = None

    @field_validator("search")
    @classmethod
    def validate_search_query(cls, v: Optional[str]) -> Optional[str]:
        return _check_search(v)


class TaxonomyRef(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class DiscoveryRuleResponse(BaseModel):
    id: int
    name: str
    search: str
    hostname: Optional[str] = None
    hostgroup_id: int
    priority: int
    max_count: int
    enabled: bool
    organizations: List[TaxonomyRef] = []
    locations: List[TaxonomyRef] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DiscoveryRuleListResponse(BaseModel):
    items: List[DiscoveryRuleResponse]
    total: int
