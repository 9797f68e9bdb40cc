"""
Discovery rule management endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session

from discovery_api.api.v2.lookups import find_record
from discovery_api.core.auth import require_role, APIClient
from discovery_api.core.database import get_db
from discovery_api.core.exceptions import DiscoveryError, RecordNotFoundError
from discovery_api.models.discovery_rule import DiscoveryRule
from discovery_api.models.hostgroup import Hostgroup
from discovery_api.models.taxonomy import Organization, Location
from discovery_api.schemas.discovery_rule import (
    DiscoveryRuleCreateRequest,
    DiscoveryRuleUpdateRequest,
    DiscoveryRuleResponse,
    DiscoveryRuleListResponse,
)
from discovery_api.services.activity_service import log_activity, ActivityAction, ResourceType

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_taxonomies(db: Session, model, ids, resource: str):
    records = db.query(model).filter(model.id.in_(ids)).all() if ids else []
    missing = set(ids) - {r.id for r in records}
    if missing:
        raise RecordNotFoundError(resource, sorted(missing)[0])
    return records


def _ensure_unique_name(db: Session, name: str, rule_id: Optional[int] = None) -> None:
    query = db.query(DiscoveryRule).filter(DiscoveryRule.name == name)
    if rule_id is not None:
        query = query.filter(DiscoveryRule.id != rule_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Discovery rule with name '{name}' already exists",
        )


@router.get("", response_model=DiscoveryRuleListResponse)
async def list_discovery_rules(
    enabled: Optional[bool] = Query(None, description="Filter by enabled status"),
    hostgroup_id: Optional[int] = Query(None, description="Filter by target host group"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """
    List discovery rules in evaluation order.
    """
    query = db.query(DiscoveryRule)
    if enabled is not None:
        query = query.filter(DiscoveryRule.enabled == enabled)
    if hostgroup_id is not None:
        query = query.filter(DiscoveryRule.hostgroup_id == hostgroup_id)

    total = query.count()
    rules = (
        query.order_by(DiscoveryRule.priority.asc(), DiscoveryRule.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return DiscoveryRuleListResponse(
        items=[DiscoveryRuleResponse.model_validate(rule) for rule in rules],
        total=total,
    )


@router.get("/{rule_id}", response_model=DiscoveryRuleResponse)
async def get_discovery_rule(
    rule_id: int,
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    return DiscoveryRuleResponse.model_validate(find_record(db, DiscoveryRule, rule_id, "discovery_rule"))


@router.post("", response_model=DiscoveryRuleResponse, status_code=status.HTTP_201_CREATED)
async def create_discovery_rule(
    request: DiscoveryRuleCreateRequest,
    client: APIClient = Depends(require_role("manager")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Create a discovery rule (manager or above).
    """
    _ensure_unique_name(db, request.name)
    find_record(db, Hostgroup, request.hostgroup_id, "hostgroup")

    try:
        rule = DiscoveryRule(
            name=request.name,
            search=request.search,
            hostname=request.hostname,
            hostgroup_id=request.hostgroup_id,
            priority=request.priority,
            max_count=request.max_count,
            enabled=request.enabled,
            organizations=_load_taxonomies(db, Organization, request.organization_ids, "organization"),
            locations=_load_taxonomies(db, Location, request.location_ids, "location"),
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)
    except DiscoveryError:
        raise
    except Exception as e:
        logger.error(f"Error creating discovery rule: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create discovery rule",
        )

    logger.info(f"Created discovery rule: id={rule.id}, name={rule.name}, priority={rule.priority}")
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.RULE_CREATE,
        resource_type=ResourceType.DISCOVERY_RULE,
        resource_id=rule.id,
        details={"name": rule.name, "search": rule.search, "hostgroup_id": rule.hostgroup_id},
        request=http_request,
    )
    return DiscoveryRuleResponse.model_validate(rule)


@router.put("/{rule_id}", response_model=DiscoveryRuleResponse)
async def update_discovery_rule(
    rule_id: int,
    request: DiscoveryRuleUpdateRequest,
    client: APIClient = Depends(require_role("manager")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Update a discovery rule (manager or above).
    """
    rule = find_record(db, DiscoveryRule, rule_id, "discovery_rule")

    if request.name is not None and request.name != rule.name:
        _ensure_unique_name(db, request.name, rule_id)
        rule.name = request.name
    if request.hostgroup_id is not None:
        find_record(db, Hostgroup, request.hostgroup_id, "hostgroup")
        rule.hostgroup_id = request.hostgroup_id
    for field in ("search", "hostname", "priority", "max_count", "enabled"):
        value = getattr(request, field)
        if value is not None:
            setattr(rule, field, value)
    if request.organization_ids is not None:
        rule.organizations = _load_taxonomies(db, Organization, request.organization_ids, "organization")
    if request.location_ids is not None:
        rule.locations = _load_taxonomies(db, Location, request.location_ids, "location")

    try:
        db.commit()
        db.refresh(rule)
    except Exception as e:
        logger.error(f"Error updating discovery rule: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update discovery rule",
        )

    logger.info(f"Updated discovery rule: id={rule_id}")
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.RULE_UPDATE,
        resource_type=ResourceType.DISCOVERY_RULE,
        resource_id=rule_id,
        details=request.model_dump(exclude_unset=True),
        request=http_request,
    )
    return DiscoveryRuleResponse.model_validate(rule)


@router.delete("/{rule_id}", status_code=status.HTTP_200_OK)
async def delete_discovery_rule(
    rule_id: int,
    client: APIClient = Depends(require_role("admin")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Delete a discovery rule (admin only). Hosts it provisioned keep running but lose the reference.
    """
    rule = find_record(db, DiscoveryRule, rule_id, "discovery_rule")
    name = rule.name
    try:
        db.delete(rule)
        db.commit()
    except Exception as e:
        logger.error(f"Error deleting discovery rule: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete discovery rule",
        )

    logger.info(f"Deleted discovery rule: id={rule_id}, name={name}")
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.RULE_DELETE,
        resource_type=ResourceType.DISCOVERY_RULE,
        resource_id=rule_id,
        details={"name": name},
        request=http_request,
    )
    return {"message": f"Discovery rule {name} deleted", "id": rule_id}
