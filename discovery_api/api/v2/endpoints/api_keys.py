"""
API key management endpoints.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from discovery_api.api.v2.lookups import find_record
from discovery_api.core.auth import (
    require_role,
    get_current_api_client,
    APIClient,
    generate_api_key,
    hash_api_key,
)
from discovery_api.core.database import get_db
from discovery_api.core.roles import Role
from discovery_api.models.api_key import APIKey
from discovery_api.schemas.api_key import (
    APIKeyCreateRequest,
    APIKeyResponse,
    APIKeyCreateResponse,
    APIKeyListResponse,
    CurrentClientResponse,
)
from discovery_api.services.activity_service import log_activity, ActivityAction, ResourceType

logger = logging.getLogger(__name__)

router = APIRouter()
auth_router = APIRouter()


def _to_response(key: APIKey) -> APIKeyResponse:
    return APIKeyResponse(
        id=key.id,
        name=key.label,
        role=key.role,
        is_active=key.is_active,
        created_at=key.created_at,
        last_used_at=key.last_used_at,
        key_masked=f"{key.key_hash[:8]}...",
    )


@router.get("", response_model=APIKeyListResponse)
async def list_api_keys(
    client: APIClient = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    """
    List API keys (admin only). Keys are masked.
    """
    keys = db.query(APIKey).order_by(APIKey.created_at.desc(), APIKey.id.desc()).all()
    return APIKeyListResponse(items=[_to_response(k) for k in keys], total=len(keys))


@router.post("", response_model=APIKeyCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    request: APIKeyCreateRequest,
    client: APIClient = Depends(require_role("admin")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Create an API key (admin only).

    The raw key is only returned in this response; the database keeps its hash.
    """
    raw_key = generate_api_key()
    api_key = APIKey(key_hash=hash_api_key(raw_key), label=request.name, role=request.role, is_active=True)
    try:
        db.add(api_key)
        db.commit()
        db.refresh(api_key)
    except Exception as e:
        logger.error(f"Error creating API key: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create API key",
        )

    logger.info(f"Created API key: id={api_key.id}, label={api_key.label}, role={api_key.role}")
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.API_KEY_CREATE,
        resource_type=ResourceType.API_KEY,
        resource_id=api_key.id,
        details={"label": api_key.label, "role": api_key.role},
        request=http_request,
    )
    return APIKeyCreateResponse(**_to_response(api_key).model_dump(), key=raw_key)


@router.delete("/{key_id}", response_model=APIKeyResponse)
async def deactivate_api_key(
    key_id: int,
    client: APIClient = Depends(require_role("admin")),
    http_request: Request = None,
    db: Session = Depends(get_db),
):
    """
    Deactivate an API key (admin only). The row is kept for the activity trail.
    """
    api_key = find_record(db, APIKey, key_id, "api_key")
    api_key.is_active = False
    db.commit()
    db.refresh(api_key)

    logger.info(f"Deactivated API key: id={key_id}")
    log_activity(
        db=db,
        client=client,
        action=ActivityAction.API_KEY_DEACTIVATE,
        resource_type=ResourceType.API_KEY,
        resource_id=key_id,
        request=http_request,
    )
    return _to_response(api_key)


@auth_router.get("/me", response_model=CurrentClientResponse)
async def whoami(client: APIClient = Depends(get_current_api_client)):
    """Describe the authenticated client."""
    return CurrentClientResponse(
        source=client.source,
        role=client.role,
        api_key_id=client.api_key_id,
        is_admin=client.role == Role.ADMIN.value,
    )
