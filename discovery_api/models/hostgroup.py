"""
Host group model: the provisioning target a discovered host is converted into.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func

from discovery_api.core.database import Base


class Hostgroup(Base):
    """Provisioning defaults applied to hosts built from this group."""
    __tablename__ = "hostgroups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True, index=True)

    # Build settings
    operatingsystem = Column(String(255), nullable=True)  # e.g. "RedHat 9.2"
    architecture = Column(String(50), nullable=True, default="x86_64")
    domain = Column(String(255), nullable=True)
    root_pass = Column(String(255), nullable=True)

    # Boot files for kexec provisioning (discovery image 3.0+)
    kernel_url = Column(String(500), nullable=True)
    initrd_url = Column(String(500), nullable=True)
    kernel_append = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def supports_kexec(self) -> bool:
        return bool(self.kernel_url and self.initrd_url)
