"""Database models."""
from discovery_api.models.taxonomy import Organization, Location
from discovery_api.models.hostgroup import Hostgroup
from discovery_api.models.discovery_rule import DiscoveryRule
from discovery_api.models.host import Host, HostKind
from discovery_api.models.api_key import APIKey
from discovery_api.models.activity_log import ActivityLog

__all__ = [
    "Organization",
    "Location",
    "Hostgroup",
    "DiscoveryRule",
    "Host",
    "HostKind",
    "APIKey",
    "ActivityLog",
]
