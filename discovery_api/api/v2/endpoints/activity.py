"""
Activity log endpoints.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from discovery_api.core.auth import require_role, APIClient
from discovery_api.core.database import get_db
from discovery_api.models.activity_log import ActivityLog
from discovery_api.schemas.activity import ActivityLogResponse, ActivityLogListResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ActivityLogListResponse)
async def list_activity(
    action: Optional[str] = Query(None, description="Filter by action, e.g. host_auto_provision"),
    resource_type: Optional[str] = Query(None, description="Filter by resource type"),
    resource_id: Optional[int] = Query(None, description="Filter by resource id"),
    actor_id: Optional[int] = Query(None, description="Filter by API key id"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """
    List activity entries, newest first.
    """
    query = db.query(ActivityLog)
    if action:
        query = query.filter(ActivityLog.action == action)
    if resource_type:
        query = query.filter(ActivityLog.resource_type == resource_type)
    if resource_id is not None:
        query = query.filter(ActivityLog.resource_id == resource_id)
    if actor_id is not None:
        query = query.filter(ActivityLog.actor_id == actor_id)
    if start_date:
        query = query.filter(ActivityLog.timestamp >= start_date)
    if end_date:
        query = query.filter(ActivityLog.timestamp <= end_date)

    total = query.count()
    entries = query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).offset(offset).limit(limit).all()
    return ActivityLogListResponse(
        items=[ActivityLogResponse.model_validate(e) for e in entries],
        total=total,
        limit=limit,
        offset=offset,
    )
