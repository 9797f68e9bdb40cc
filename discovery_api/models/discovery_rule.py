"""
Discovery rule model.

A rule couples a search predicate over host facts with the host group that
matching hosts are provisioned into.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Table, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from discovery_api.core.database import Base

discovery_rule_organizations = Table(
    "discovery_rule_organizations",
    Base.metadata,
    Column("discovery_rule_id", Integer, ForeignKey("discovery_rules.id", ondelete="CASCADE"), primary_key=True),
    Column("organization_id", Integer, ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True),
)

discovery_rule_locations = Table(
    "discovery_rule_locations",
    Base.metadata,
    Column("discovery_rule_id", Integer, ForeignKey("discovery_rules.id", ondelete="CASCADE"), primary_key=True),
    Column("location_id", Integer, ForeignKey("locations.id", ondelete="CASCADE"), primary_key=True),
)


class DiscoveryRule(Base):
    __tablename__ = "discovery_rules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    search = Column(Text, nullable=False, default="")
    hostname = Column(String(255), nullable=True)  # format template, blank keeps discovered name
    hostgroup_id = Column(Integer, ForeignKey("hostgroups.id"), nullable=False, index=True)

    # Lower values are evaluated first
    priority = Column(Integer, nullable=False, default=0, index=True)
    # 0 means unlimited
    max_count = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    hostgroup = relationship("Hostgroup")
    organizations = relationship("Organization", secondary=discovery_rule_organizations)
    locations = relationship("Location", secondary=discovery_rule_locations)
    hosts = relationship("Host", back_populates="discovery_rule")
