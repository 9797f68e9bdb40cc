"""Schemas for discovered and managed hosts."""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from discovery_api.models.host import HostKind


class FactsUploadRequest(BaseModel):
    """Facts reported by the discovery image."""
    facts: Dict[str, Any] = Field(..., description="Flat fact name to value mapping")


class ProvisionRequest(BaseModel):
    """Manual provisioning of a discovered host."""
    hostgroup_id: int = Field(..., description="Host group to build the host from")
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="New host name")


class HostBaseResponse(BaseModel):
    id: int
    kind: HostKind
    name: str
    mac: str
    ip: Optional[str] = None
    memory: int = 0
    cpu_count: int = 0
    disk_count: int = 0
    disks_size: int = 0
    organization_id: Optional[int] = None
    organization_name: Optional[str] = None
    location_id: Optional[int] = None
    location_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DiscoveredHostResponse(HostBaseResponse):
    discovery_version: Optional[str] = None
    last_report: Optional[datetime] = None


class DiscoveredHostDetailResponse(DiscoveredHostResponse):
    facts: Dict[str, str] = {}


class DiscoveredHostListResponse(BaseModel):
    items: List[DiscoveredHostResponse]
    total: int


class HostResponse(HostBaseResponse):
    """Managed host."""
    build: bool
    provision_method: Optional[str] = None
    comment: Optional[str] = None
    hostgroup_id: Optional[int] = None
    hostgroup_name: Optional[str] = None
    discovery_rule_id: Optional[int] = None


class HostListResponse(BaseModel):
    items: List[HostResponse]
    total: int


class MessageResponse(BaseModel):
    message: str
