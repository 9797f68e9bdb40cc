"""
Host model.

Discovered and managed hosts share one table. Provisioning flips ``kind`` in
place, so a managed host keeps the id it was discovered with.
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, JSON, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from discovery_api.core.database import Base


class HostKind(str, enum.Enum):
    DISCOVERED = "discovered"
    MANAGED = "managed"


class Host(Base):
    __tablename__ = "hosts"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(Enum(HostKind), nullable=False, default=HostKind.DISCOVERED, index=True)
    name = Column(String(255), nullable=False, unique=True, index=True)

    # Primary interface
    mac = Column(String(17), nullable=False, unique=True, index=True)
    ip = Column(String(45), nullable=True, index=True)

    # Hardware summary derived from facts
    memory = Column(Integer, nullable=False, default=0)  # MB
    cpu_count = Column(Integer, nullable=False, default=0)
    disk_count = Column(Integer, nullable=False, default=0)
    disks_size = Column(Integer, nullable=False, default=0)  # MB

    facts = Column(JSON, nullable=False, default=dict)

    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=True, index=True)

    # Managed host fields
    hostgroup_id = Column(Integer, ForeignKey("hostgroups.id"), nullable=True, index=True)
    discovery_rule_id = Column(Integer, ForeignKey("discovery_rules.id", ondelete="SET NULL"), nullable=True, index=True)
    build = Column(Boolean, nullable=False, default=False)
    provision_method = Column(String(50), nullable=True)
    comment = Column(Text, nullable=True)

    last_report = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    organization = relationship("Organization")
    location = relationship("Location")
    hostgroup = relationship("Hostgroup")
    discovery_rule = relationship("DiscoveryRule", back_populates="hosts")

    @property
    def is_discovered(self) -> bool:
        return self.kind == HostKind.DISCOVERED

    @property
    def organization_name(self):
        return self.organization.name if self.organization else None

    @property
    def location_name(self):
        return self.location.name if self.location else None

    @property
    def hostgroup_name(self):
        return self.hostgroup.name if self.hostgroup else None

    @property
    def discovery_version(self):
        return (self.facts or {}).get("discovery_version")

    def __repr__(self):
        return f"<Host {self.name} ({self.kind.value if self.kind else '?'})>"
