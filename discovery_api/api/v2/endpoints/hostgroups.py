"""
Host group endpoints.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session

from discovery_api.api.v2.lookups import find_record
from discovery_api.core.auth import require_role, APIClient
from discovery_api.core.database import get_db
from discovery_api.models.hostgroup import Hostgroup
from discovery_api.schemas.hostgroup import HostgroupCreateRequest, HostgroupResponse, HostgroupListResponse
from discovery_api.services.activity_service import log_activity, ActivityAction, ResourceType

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=HostgroupListResponse)
async def list_hostgroups(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    query = db.query(Hostgroup)
    total = query.count()
    hostgroups = query.order_by(Hostgroup.name.asc()).offset(offset).limit(limit).all()
    return HostgroupListResponse(items=[HostgroupResponse.model_validate(h) for h in hostgroups], total=total)


@router.get("/{hostgroup_id}", response_model=HostgroupResponse)
async def get_hostgroup(
    hostgroup_id: int,
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    return HostgroupResponse.model_validate(find_record(db, Hostgroup, hostgroup_id, "hostgroup"))


@router.post("", response_model=HostgroupResponse, status_code=status.HTTP_201_CREATED)
async def create_hostgroup(
    request: HostgroupCreateRequest,
    client: APIClient = Depends(require_role("manager")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Create a host group (manager or above).
    """
    if db.query(Hostgroup).filter(Hostgroup.name == request.name).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Host group with name '{request.name}' already exists",
        )

    try:
        hostgroup = Hostgroup(**request.model_dump())
        db.add(hostgroup)
        db.commit()
        db.refresh(hostgroup)
    except Exception as e:
        logger.error(f"Error creating host group: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create host group",
        )

    logger.info(f"Created host group: id={hostgroup.id}, name={hostgroup.name}")
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.HOSTGROUP_CREATE,
        resource_type=ResourceType.HOSTGROUP,
        resource_id=hostgroup.id,
        details={"name": hostgroup.name, "operatingsystem": hostgroup.operatingsystem},
        request=http_request,
    )
    return HostgroupResponse.model_validate(hostgroup)
