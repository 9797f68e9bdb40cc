"""
Seeds the organization and location that new discovered hosts are assigned to.
"""
import logging

from sqlalchemy.orm import Session

from discovery_api.core.config import settings
from discovery_api.models.taxonomy import Organization, Location

logger = logging.getLogger(__name__)


def ensure_default_taxonomies(db: Session) -> None:
    """Create the configured discovery organization and location when missing."""
    created = []
    if settings.ORGANIZATIONS_ENABLED and settings.DISCOVERY_ORGANIZATION:
        if not db.query(Organization).filter(Organization.name == settings.DISCOVERY_ORGANIZATION).first():
            db.add(Organization(name=settings.DISCOVERY_ORGANIZATION))
            created.append(f"organization '{settings.DISCOVERY_ORGANIZATION}'")
    if settings.LOCATIONS_ENABLED and settings.DISCOVERY_LOCATION:
        if not db.query(Location).filter(Location.name == settings.DISCOVERY_LOCATION).first():
            db.add(Location(name=settings.DISCOVERY_LOCATION))
            created.append(f"location '{settings.DISCOVERY_LOCATION}'")

    if not created:
        logger.info("Default discovery taxonomies already exist. Skipping seed.")
        return
    db.commit()
    logger.info(f"Seeded {', '.join(created)}")
