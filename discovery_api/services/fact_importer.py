"""
Service for turning uploaded facts into discovered hosts.
"""
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from discovery_api.core.config import settings, NAMING_FACT, NAMING_RANDOM
from discovery_api.core.exceptions import FactImportError
from discovery_api.models.host import Host, HostKind
from discovery_api.models.taxonomy import Organization, Location
from discovery_api.utils.hostname import normalize_mac, normalize_hostname, mac_name, random_name

logger = logging.getLogger(__name__)

ORGANIZATION_FACT = "discovery_organization"
LOCATION_FACT = "discovery_location"
RANDOM_NAME_ATTEMPTS = 10

_MEMORY_UNITS = {
    "b": 1.0 / (1024 * 1024),
    "kb": 1.0 / 1024,
    "kib": 1.0 / 1024,
    "mb": 1.0,
    "mib": 1.0,
    "gb": 1024.0,
    "gib": 1024.0,
    "tb": 1024.0 * 1024,
    "tib": 1024.0 * 1024,
}


def normalize_facts(raw: Dict[str, Any]) -> Dict[str, str]:
    """
    Flatten an uploaded facts payload into a string to string mapping.

    Booleans become ``true``/``false``; ``None`` and structured values are dropped.
    """
    facts = {}
    for key, value in (raw or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            facts[str(key)] = "true" if value else "false"
        elif isinstance(value, (str, int, float)):
            facts[str(key)] = str(value)
        else:
            logger.debug(f"Dropping structured fact '{key}' ({type(value).__name__})")
    return facts


def parse_memory_mb(facts: Dict[str, str]) -> int:
    """
    Memory in MB, rounded up.

    Uses ``memorysize_mb`` and falls back to ``memorysize`` (e.g. ``"7.63 GB"``).
    """
    raw = facts.get("memorysize_mb")
    if raw:
        try:
            return int(math.ceil(float(raw)))
        except (ValueError, OverflowError):
            logger.warning(f"Ignoring invalid memorysize_mb fact: {raw!r}")

    raw = facts.get("memorysize")
    if raw:
        match = re.match(r"^\s*([\d.]+)\s*([a-zA-Z]*)\s*$", raw)
        if match:
            unit = (match.group(2) or "mb").lower()
            factor = _MEMORY_UNITS.get(unit)
            if factor is not None:
                try:
                    return int(math.ceil(float(match.group(1)) * factor))
                except (ValueError, OverflowError):
                    pass
        logger.warning(f"Ignoring invalid memorysize fact: {raw!r}")
    return 0


def parse_cpu_count(facts: Dict[str, str]) -> int:
    for key in ("physicalprocessorcount", "processorcount"):
        raw = facts.get(key)
        if raw:
            try:
                return int(float(raw))
            except (ValueError, OverflowError):
                logger.warning(f"Ignoring invalid {key} fact: {raw!r}")
    return 0


def parse_disks(facts: Dict[str, str]) -> Tuple[int, int]:
    """Return (disk_count, disks_size in MB rounded up) from the blockdevice facts."""
    devices = [d.strip() for d in facts.get("blockdevices", "").split(",") if d.strip()]
    total_bytes = 0
    for device in devices:
        raw = facts.get(f"blockdevice_{device}_size")
        if not raw:
            continue
        try:
            total_bytes += int(float(raw))
        except (ValueError, OverflowError):
            logger.warning(f"Ignoring invalid size for block device {device}: {raw!r}")
    return len(devices), int(math.ceil(total_bytes / 1024.0 / 1024.0))


def primary_interface(facts: Dict[str, str], mac: str) -> Optional[str]:
    """Name of the interface carrying the given MAC, if the facts list it."""
    for iface in [i.strip() for i in facts.get("interfaces", "").split(",") if i.strip()]:
        if normalize_mac(facts.get(f"macaddress_{iface}")) == mac:
            return iface
    return None


class FactImporter:
    """Creates or refreshes discovered hosts from facts."""

    def __init__(self, db: Session):
        self.db = db

    def import_host(self, raw_facts: Dict[str, Any]) -> Host:
        """
        Import facts, creating a new discovered host or refreshing the one with the same MAC.

        Raises:
            FactImportError: if the primary MAC is missing or belongs to a managed host,
                             or the computed name is taken by another host
        """
        facts = normalize_facts(raw_facts)
        mac_fact = settings.DISCOVERY_FACT
        mac = normalize_mac(facts.get(mac_fact))
        if not mac:
            raise FactImportError(f"Unable to detect primary interface using MAC '{mac_fact}' fact")

        host = self.db.query(Host).filter(Host.mac == mac).first()
        if host is not None and host.kind == HostKind.MANAGED:
            raise FactImportError(f"Host {host.name} with MAC {mac} is already provisioned")

        is_new = host is None
        if is_new:
            name = self._build_name(facts, mac)
            clash = self.db.query(Host).filter(Host.name == name).first()
            if clash is not None:
                raise FactImportError(f"Name {name} is already taken by host with MAC {clash.mac}")
            host = Host(kind=HostKind.DISCOVERED, name=name, mac=mac)
            self.db.add(host)

        self._apply_facts(host, facts, mac)
        self._assign_taxonomy(host, facts, is_new)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(host)

        logger.info(
            f"{'Discovered new' if is_new else 'Refreshed'} host {host.name} "
            f"(mac={mac}, ip={host.ip}, memory={host.memory}MB)"
        )
        return host

    def _build_name(self, facts: Dict[str, str], mac: str) -> str:
        prefix = settings.DISCOVERY_PREFIX or ""
        naming = settings.DISCOVERY_NAMING

        if naming == NAMING_RANDOM:
            name = random_name(prefix, seed=mac)
            # distinct MACs can map to the same name
            for attempt in range(1, RANDOM_NAME_ATTEMPTS):
                if not self._name_taken(name):
                    break
                name = random_name(prefix, seed=f"{mac}-{attempt}")
            return name

        if naming == NAMING_FACT:
            for fact_name in settings.DISCOVERY_HOSTNAME_FACTS:
                value = facts.get(fact_name)
                if value:
                    return normalize_hostname(value, prefix)
            logger.warning(
                f"None of the hostname facts {settings.DISCOVERY_HOSTNAME_FACTS} present, naming host by MAC"
            )

        return mac_name(mac, prefix)

    def _name_taken(self, name: str) -> bool:
        return self.db.query(Host.id).filter(Host.name == name).first() is not None

    def _apply_facts(self, host: Host, facts: Dict[str, str], mac: str) -> None:
        iface = primary_interface(facts, mac)
        host.ip = (facts.get(f"ipaddress_{iface}") if iface else None) or facts.get("ipaddress")
        host.memory = parse_memory_mb(facts)
        host.cpu_count = parse_cpu_count(facts)
        host.disk_count, host.disks_size = parse_disks(facts)
        host.facts = facts
        host.last_report = datetime.now(timezone.utc)

    def _assign_taxonomy(self, host: Host, facts: Dict[str, str], is_new: bool) -> None:
        if settings.ORGANIZATIONS_ENABLED and (is_new or facts.get(ORGANIZATION_FACT)):
            name = facts.get(ORGANIZATION_FACT) or settings.DISCOVERY_ORGANIZATION
            organization = self._find_taxonomy(Organization, name)
            if organization is not None:
                host.organization = organization

        if settings.LOCATIONS_ENABLED and (is_new or facts.get(LOCATION_FACT)):
            name = facts.get(LOCATION_FACT) or settings.DISCOVERY_LOCATION
            location = self._find_taxonomy(Location, name)
            if location is not None:
                host.location = location

    def _find_taxonomy(self, model, name: Optional[str]):
        """Look the record up by name, falling back to the oldest one."""
        record = None
        if name:
            record = self.db.query(model).filter(model.name == name).first()
        if record is None:
            record = self.db.query(model).order_by(model.id.asc()).first()
            if record is not None and name:
                logger.warning(f"{model.__name__} '{name}' not found, using '{record.name}'")
        return record
