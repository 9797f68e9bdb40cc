"""
Managed host endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session

from discovery_api.api.v2.lookups import find_host
from discovery_api.core.auth import require_role, APIClient
from discovery_api.core.database import get_db
from discovery_api.models.host import Host, HostKind
from discovery_api.schemas.host import HostResponse, HostListResponse
from discovery_api.services.activity_service import log_activity, ActivityAction, ResourceType

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=HostListResponse)
async def list_hosts(
    hostgroup_id: Optional[int] = Query(None, description="Filter by host group"),
    build: Optional[bool] = Query(None, description="Filter by build mode"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """
    List managed hosts.
    """
    query = db.query(Host).filter(Host.kind == HostKind.MANAGED)
    if hostgroup_id is not None:
        query = query.filter(Host.hostgroup_id == hostgroup_id)
    if build is not None:
        query = query.filter(Host.build == build)

    total = query.count()
    hosts = query.order_by(Host.name.asc()).offset(offset).limit(limit).all()
    return HostListResponse(items=[HostResponse.model_validate(h) for h in hosts], total=total)


@router.get("/{host_id}", response_model=HostResponse)
async def get_host(
    host_id: str,
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    return HostResponse.model_validate(find_host(db, host_id, HostKind.MANAGED))


@router.delete("/{host_id}", status_code=status.HTTP_200_OK)
async def delete_host(
    host_id: str,
    client: APIClient = Depends(require_role("admin")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Delete a managed host (admin only).
    """
    host = find_host(db, host_id, HostKind.MANAGED)
    deleted_id, name = host.id, host.name
    try:
        db.delete(host)
        db.commit()
    except Exception as e:
        logger.error(f"Error deleting host {name}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete host",
        )

    logger.info(f"Deleted host: id={deleted_id}, name={name}")
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.HOST_DELETE,
        resource_type=ResourceType.HOST,
        resource_id=deleted_id,
        details={"name": name},
        request=http_request,
    )
    return {"message": f"Host {name} deleted", "id": deleted_id, "name": name}
