"""
API v2 router.
"""
from fastapi import APIRouter

from discovery_api.api.v2.endpoints import (
    activity,
    api_keys,
    discovered_hosts,
    discovery_rules,
    health,
    hostgroups,
    hosts,
    taxonomies,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])

api_router.include_router(discovered_hosts.router, prefix="/discovered_hosts", tags=["discovered_hosts"])
api_router.include_router(hosts.router, prefix="/hosts", tags=["hosts"])
api_router.include_router(discovery_rules.router, prefix="/discovery_rules", tags=["discovery_rules"])
api_router.include_router(hostgroups.router, prefix="/hostgroups", tags=["hostgroups"])
api_router.include_router(taxonomies.organizations_router, prefix="/organizations", tags=["organizations"])
api_router.include_router(taxonomies.locations_router, prefix="/locations", tags=["locations"])
api_router.include_router(api_keys.router, prefix="/api_keys", tags=["api_keys"])
api_router.include_router(api_keys.auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
