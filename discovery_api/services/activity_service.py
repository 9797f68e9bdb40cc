"""
Activity logging service for the audit trail.
"""
import logging
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session
from fastapi import Request

from discovery_api.core.auth import APIClient
from discovery_api.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class ActivityAction:
    """Constants for activity actions."""
    FACTS_IMPORT = "facts_import"
    HOST_PROVISION = "host_provision"
    HOST_AUTO_PROVISION = "host_auto_provision"
    HOST_REBOOT = "host_reboot"
    HOST_REFRESH_FACTS = "host_refresh_facts"
    HOST_DELETE = "host_delete"
    RULE_CREATE = "rule_create"
    RULE_UPDATE = "rule_update"
    RULE_DELETE = "rule_delete"
    HOSTGROUP_CREATE = "hostgroup_create"
    API_KEY_CREATE = "api_key_create"
    API_KEY_DEACTIVATE = "api_key_deactivate"


class ResourceType:
    """Constants for resource types."""
    DISCOVERED_HOST = "discovered_host"
    HOST = "host"
    DISCOVERY_RULE = "discovery_rule"
    HOSTGROUP = "hostgroup"
    API_KEY = "api_key"


def client_address(request: Optional[Request]) -> Optional[str]:
    """Client IP, honouring X-Forwarded-For set by a proxy."""
    if request is None:
        return None
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


def log_activity(
    db: Session,
    client: APIClient,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> ActivityLog:
    """
    Record an action in the audit trail.

    Args:
        db: Database session
        client: Authenticated API client
        action: One of ActivityAction
        resource_type: One of ResourceType
        resource_id: ID of the affected resource
        details: Additional JSON details about the action
        request: Request the action came from (for IP and user agent)

    Returns:
        Created ActivityLog record
    """
    user_agent = request.headers.get("User-Agent") if request is not None else None

    activity = ActivityLog(
        actor_id=client.api_key_id,
        actor_source=client.source,
        actor_role=client.role,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=client_address(request),
        user_agent=user_agent[:255] if user_agent else None,
    )
    db.add(activity)
    db.commit()
    db.refresh(activity)

    logger.debug(f"Logged activity: {action} on {resource_type}:{resource_id} by {client.role} ({client.source})")
    return activity
