"""
Organization and location endpoints.

Both resources share the same shape, so the routers are built by one factory.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from discovery_api.api.v2.lookups import find_record
from discovery_api.core.auth import require_role, APIClient
from discovery_api.core.database import get_db
from discovery_api.models.taxonomy import Organization, Location
from discovery_api.schemas.hostgroup import TaxonomyCreateRequest, TaxonomyResponse, TaxonomyListResponse

logger = logging.getLogger(__name__)


def build_taxonomy_router(model, resource: str) -> APIRouter:
    router = APIRouter()

    @router.get("", response_model=TaxonomyListResponse, name=f"list_{resource}s")
    async def list_taxonomies(
        client: APIClient = Depends(require_role("viewer")),
        db: Session = Depends(get_db),
    ):
        records = db.query(model).order_by(model.name.asc()).all()
        return TaxonomyListResponse(items=[TaxonomyResponse.model_validate(r) for r in records], total=len(records))

    @router.get("/{record_id}", response_model=TaxonomyResponse, name=f"get_{resource}")
    async def get_taxonomy(
        record_id: int,
        client: APIClient = Depends(require_role("viewer")),
        db: Session = Depends(get_db),
    ):
        return TaxonomyResponse.model_validate(find_record(db, model, record_id, resource))

    @router.post("", response_model=TaxonomyResponse, status_code=status.HTTP_201_CREATED, name=f"create_{resource}")
    async def create_taxonomy(
        request: TaxonomyCreateRequest,
        client: APIClient = Depends(require_role("manager")),
        db: Session = Depends(get_db),
    ):
        if db.query(model).filter(model.name == request.name).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{resource.capitalize()} with name '{request.name}' already exists",
            )
        record = model(name=request.name)
        db.add(record)
        db.commit()
        db.refresh(record)
        logger.info(f"Created {resource}: id={record.id}, name={record.name}")
        return TaxonomyResponse.model_validate(record)

    return router


organizations_router = build_taxonomy_router(Organization, "organization")
locations_router = build_taxonomy_router(Location, "location")
