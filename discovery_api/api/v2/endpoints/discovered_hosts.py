"""
Discovered host endpoints: fact upload, listing, provisioning and power actions.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session

from discovery_api.api.v2.lookups import find_host, find_record
from discovery_api.core.auth import require_role, APIClient
from discovery_api.core.config import settings
from discovery_api.core.database import get_db
from discovery_api.core.exceptions import DiscoveryError, ProvisioningError, RuleNotFoundError
from discovery_api.models.host import Host, HostKind
from discovery_api.models.hostgroup import Hostgroup
from discovery_api.schemas.host import (
    FactsUploadRequest,
    ProvisionRequest,
    DiscoveredHostResponse,
    DiscoveredHostDetailResponse,
    DiscoveredHostListResponse,
    HostResponse,
    MessageResponse,
)
from discovery_api.services.activity_service import log_activity, ActivityAction, ResourceType
from discovery_api.services.fact_importer import FactImporter
from discovery_api.services.provisioning_service import ProvisioningService, NodeActions
from discovery_api.utils.search_query import host_matches, parse_search

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=DiscoveredHostListResponse)
async def list_discovered_hosts(
    search: Optional[str] = Query(None, description="Search predicate, e.g. 'facts.somefact = abc'"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of hosts to return"),
    offset: int = Query(0, ge=0, description="Number of hosts to skip"),
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """
    List discovered hosts, newest first, optionally filtered by a search predicate.
    """
    try:
        parse_search(search)
        hosts = (
            db.query(Host)
            .filter(Host.kind == HostKind.DISCOVERED)
            .order_by(Host.created_at.desc(), Host.id.desc())
            .all()
        )
        if search:
            hosts = [host for host in hosts if host_matches(search, host)]

        return DiscoveredHostListResponse(
            items=[DiscoveredHostResponse.model_validate(h) for h in hosts[offset:offset + limit]],
            total=len(hosts),
        )
    except DiscoveryError:
        raise
    except Exception as e:
        logger.error(f"Error listing discovered hosts: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve discovered hosts",
        )


@router.post("/facts", status_code=status.HTTP_201_CREATED, response_model=None)
def upload_facts(
    request: FactsUploadRequest,
    client: APIClient = Depends(require_role("operator")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Create or refresh a discovered host from facts.

    When auto-provisioning is enabled and a rule applies, the host is
    provisioned right away and the managed host is returned.
    """
    importer = FactImporter(db)
    host = importer.import_host(request.facts)
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.FACTS_IMPORT,
        resource_type=ResourceType.DISCOVERED_HOST,
        resource_id=host.id,
        details={"name": host.name, "mac": host.mac},
        request=http_request,
    )

    if settings.DISCOVERY_AUTO:
        try:
            rule = ProvisioningService(db).auto_provision(host)
        except RuleNotFoundError:
            logger.info(f"Auto-provisioning skipped for {host.name}: no rule applies")
        else:
            log_activity(
                db=db,
                client=client,
                action=ActivityAction.HOST_AUTO_PROVISION,
                resource_type=ResourceType.HOST,
                resource_id=host.id,
                details={"name": host.name, "rule": rule.name},
                request=http_request,
            )
            return HostResponse.model_validate(host)

    return DiscoveredHostDetailResponse.model_validate(host)


@router.post("/auto_provision_all", response_model=MessageResponse)
def auto_provision_all(
    client: APIClient = Depends(require_role("operator")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Auto-provision every discovered host that matches a rule.
    """
    provisioned, errors = ProvisioningService(db).auto_provision_all()
    if provisioned:
        log_activity(
            db=db,
            client=client,
            action=ActivityAction.HOST_AUTO_PROVISION,
            resource_type=ResourceType.HOST,
            details={"count": provisioned, "errors": len(errors)},
            request=http_request,
        )
    if errors:
        raise ProvisioningError(
            f"Errors during auto provisioning ({provisioned} discovered hosts were provisioned): "
            + "; ".join(errors)
        )
    return MessageResponse(message=f"{provisioned} discovered hosts were provisioned")


@router.post("/reboot_all", response_model=MessageResponse)
def reboot_all(
    client: APIClient = Depends(require_role("operator")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Reboot every discovered host.
    """
    rebooted, errors = NodeActions(db).reboot_all()
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.HOST_REBOOT,
        resource_type=ResourceType.DISCOVERED_HOST,
        details={"count": rebooted, "errors": len(errors)},
        request=http_request,
    )
    if errors:
        raise DiscoveryError(f"Errors during reboot ({rebooted} discovered hosts rebooted): " + "; ".join(errors))
    return MessageResponse(message=f"{rebooted} discovered hosts are rebooting")


@router.get("/{host_id}", response_model=DiscoveredHostDetailResponse)
async def get_discovered_host(
    host_id: str,
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """
    Show a discovered host by id or name, including its facts.
    """
    host = find_host(db, host_id, HostKind.DISCOVERED)
    return DiscoveredHostDetailResponse.model_validate(host)


@router.put("/{host_id}", response_model=HostResponse)
def provision_discovered_host(
    host_id: str,
    request: ProvisionRequest,
    client: APIClient = Depends(require_role("operator")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Provision a discovered host manually into the given host group.
    """
    host = find_host(db, host_id, HostKind.DISCOVERED)
    hostgroup = find_record(db, Hostgroup, request.hostgroup_id, "hostgroup")
    discovered_name = host.name

    ProvisioningService(db).provision(host, hostgroup, name=request.name)
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.HOST_PROVISION,
        resource_type=ResourceType.HOST,
        resource_id=host.id,
        details={"discovered_name": discovered_name, "name": host.name, "hostgroup": hostgroup.name},
        request=http_request,
    )
    return HostResponse.model_validate(host)


@router.delete("/{host_id}", status_code=status.HTTP_200_OK)
async def delete_discovered_host(
    host_id: str,
    client: APIClient = Depends(require_role("admin")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Delete a discovered host (admin only).
    """
    host = find_host(db, host_id, HostKind.DISCOVERED)
    deleted_id, name = host.id, host.name
    try:
        db.delete(host)
        db.commit()
    except Exception as e:
        logger.error(f"Error deleting discovered host {name}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete discovered host",
        )

    logger.info(f"Deleted discovered host: id={deleted_id}, name={name}")
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.HOST_DELETE,
        resource_type=ResourceType.DISCOVERED_HOST,
        resource_id=deleted_id,
        details={"name": name},
        request=http_request,
    )
    return {"message": f"Discovered host {name} deleted", "id": deleted_id, "name": name}


@router.post("/{host_id}/auto_provision", response_model=MessageResponse)
def auto_provision(
    host_id: str,
    client: APIClient = Depends(require_role("operator")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Provision a discovered host using the first discovery rule that applies.

    Responds 404 when no rule applies.
    """
    host = find_host(db, host_id, HostKind.DISCOVERED)
    discovered_name = host.name

    rule = ProvisioningService(db).auto_provision(host)
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.HOST_AUTO_PROVISION,
        resource_type=ResourceType.HOST,
        resource_id=host.id,
        details={"name": host.name, "rule": rule.name},
        request=http_request,
    )
    return MessageResponse(message=f"Host {discovered_name} was provisioned with rule {rule.name}")


@router.post("/{host_id}/reboot", response_model=MessageResponse)
def reboot(
    host_id: str,
    client: APIClient = Depends(require_role("operator")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Reboot a discovered host.
    """
    host = find_host(db, host_id, HostKind.DISCOVERED)
    NodeActions(db).reboot(host)
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.HOST_REBOOT,
        resource_type=ResourceType.DISCOVERED_HOST,
        resource_id=host.id,
        details={"name": host.name},
        request=http_request,
    )
    return MessageResponse(message=f"Host {host.name} is rebooting")


@router.post("/{host_id}/refresh_facts", response_model=DiscoveredHostDetailResponse)
def refresh_facts(
    host_id: str,
    client: APIClient = Depends(require_role("operator")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Re-read facts from the discovery image and update the host.
    """
    host = find_host(db, host_id, HostKind.DISCOVERED)
    host = NodeActions(db).refresh_facts(host)
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.HOST_REFRESH_FACTS,
        resource_type=ResourceType.DISCOVERED_HOST,
        resource_id=host.id,
        details={"name": host.name},
        request=http_request,
    )
    return DiscoveredHostDetailResponse.model_validate(host)
