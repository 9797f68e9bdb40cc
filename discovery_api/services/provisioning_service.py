"""
Service for converting discovered hosts into managed hosts.
"""
import logging
import random
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from discovery_api.core.config import settings
from discovery_api.core.exceptions import (
    DiscoveryError,
    FactImportError,
    NodeAPIError,
    ProvisioningError,
    RuleNotFoundError,
)
from discovery_api.models.discovery_rule import DiscoveryRule
from discovery_api.models.host import Host, HostKind
from discovery_api.models.hostgroup import Hostgroup
from discovery_api.services.fact_importer import FactImporter
from discovery_api.services.node_api import InventoryService, PowerService
from discovery_api.services.rule_matcher import RuleMatcher
from discovery_api.utils.hostname import normalize_hostname, normalize_mac

logger = logging.getLogger(__name__)

MIN_ROOT_PASS_LENGTH = 8
# First discovery image release able to kexec into the installer
KEXEC_MIN_VERSION = (3, 0)


def parse_version(value: Optional[str]) -> Tuple[int, ...]:
    parts = []
    for piece in str(value or "").split("."):
        digits = "".join(ch for ch in piece if ch.isdigit())
        if not digits:
            break
        parts.append(int(digits))
    return tuple(parts)


def render_hostname(template: Optional[str], host: Host) -> str:
    """
    Render a rule hostname template for the host.

    Supported keys: ``{name}``, ``{mac}``, ``{ip}``, ``{rand}`` and
    ``{facts[<fact>]}``. A blank template keeps the discovered name.
    """
    if not template or not template.strip():
        return host.name

    values = {
        "name": host.name,
        "mac": (host.mac or "").replace(":", ""),
        "ip": (host.ip or "").replace(".", "-"),
        "rand": f"{random.randint(0, 99999):05d}",
        "facts": host.facts or {},
    }
    try:
        rendered = template.format_map(values)
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        raise ProvisioningError(f"Unable to render hostname template '{template}' for host {host.name}: {e}")

    name = normalize_hostname(rendered)
    if not name:
        raise ProvisioningError(f"Hostname template '{template}' rendered an empty name for host {host.name}")
    return name


class ProvisioningService:
    """Provisions discovered hosts, manually or through discovery rules."""

    def __init__(self, db: Session):
        self.db = db
        self.matcher = RuleMatcher(db)

    def provision(
        self,
        host: Host,
        hostgroup: Hostgroup,
        name: Optional[str] = None,
        rule: Optional[DiscoveryRule] = None,
    ) -> Host:
        """
        Convert a discovered host into a managed host in build mode.

        The host keeps its id. When reboots are enabled the node is power
        cycled (or kexec'd) afterwards; if that fails nothing is saved.

        Raises:
            ProvisioningError: invalid host group, already provisioned host or name clash
            NodeAPIError: the power action failed
        """
        if host.kind != HostKind.DISCOVERED:
            raise ProvisioningError(f"Host {host.name} is already provisioned")
        self.validate_hostgroup(hostgroup)

        if name:
            new_name = normalize_hostname(name)
            if not new_name:
                raise ProvisioningError(f"Name '{name}' is not a valid host name")
        elif rule is not None:
            new_name = render_hostname(rule.hostname, host)
        else:
            new_name = host.name

        clash = self.db.query(Host).filter(Host.name == new_name, Host.id != host.id).first()
        if clash is not None:
            raise ProvisioningError(f"Name {new_name} is already taken by another host")

        old_name = host.name
        host.name = new_name
        host.kind = HostKind.MANAGED
        host.hostgroup = hostgroup
        host.build = True
        host.provision_method = "build"
        if rule is not None:
            host.discovery_rule = rule
            host.comment = f"Auto-discovered and provisioned via rule '{rule.name}'"

        try:
            self.db.flush()
            if settings.DISCOVERY_REBOOT:
                self.power_up_installer(host, hostgroup)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(host)

        logger.info(
            f"Provisioned discovered host {old_name} as {host.name} "
            f"(hostgroup={hostgroup.name}, rule={rule.name if rule else None})"
        )
        return host

    @staticmethod
    def validate_hostgroup(hostgroup: Hostgroup) -> None:
        if hostgroup is None:
            raise ProvisioningError("A host group is required to provision a host")
        if not hostgroup.operatingsystem:
            raise ProvisioningError(f"Host group {hostgroup.name} has no operating system")
        if not hostgroup.root_pass or len(hostgroup.root_pass) < MIN_ROOT_PASS_LENGTH:
            raise ProvisioningError(
                f"Root password of host group {hostgroup.name} must be at least {MIN_ROOT_PASS_LENGTH} characters"
            )

    @staticmethod
    def can_kexec(host: Host, hostgroup: Hostgroup) -> bool:
        facts = host.facts or {}
        return (
            bool(facts.get("discovery_kexec"))
            and parse_version(facts.get("discovery_version")) >= KEXEC_MIN_VERSION
            and hostgroup.supports_kexec
        )

    def power_up_installer(self, host: Host, hostgroup: Hostgroup) -> None:
        power = PowerService(host.ip)
        if self.can_kexec(host, hostgroup):
            power.kexec({
                "kernel": hostgroup.kernel_url,
                "initram": hostgroup.initrd_url,
                "append": hostgroup.kernel_append or "",
            })
        else:
            power.reboot()

    def auto_provision(self, host: Host) -> DiscoveryRule:
        """
        Provision the host with the first applicable rule.

        Raises:
            RuleNotFoundError: if no rule applies
        """
        if host.kind != HostKind.DISCOVERED:
            raise ProvisioningError(f"Host {host.name} is already provisioned")
        rule = self.matcher.find_rule(host)
        if rule is None:
            raise RuleNotFoundError(host.name)
        self.provision(host, rule.hostgroup, rule=rule)
        return rule

    def auto_provision_all(self) -> Tuple[int, List[str]]:
        """
        Auto-provision every discovered host.

        Hosts with no applicable rule are skipped.

        Returns:
            (number of provisioned hosts, error messages for failed hosts)
        """
        hosts = (
            self.db.query(Host)
            .filter(Host.kind == HostKind.DISCOVERED)
            .order_by(Host.id.asc())
            .all()
        )
        provisioned = 0
        errors = []
        for host in hosts:
            name = host.name
            try:
                rule = self.matcher.find_rule(host)
                if rule is None:
                    continue
                self.provision(host, rule.hostgroup, rule=rule)
                provisioned += 1
            except DiscoveryError as e:
                logger.warning(f"Auto-provisioning of host {name} failed: {e.message}")
                errors.append(f"{name}: {e.message}")
        logger.info(f"Auto-provisioned {provisioned} of {len(hosts)} discovered hosts ({len(errors)} errors)")
        return provisioned, errors


class NodeActions:
    """Power and inventory actions that do not change the host type."""

    def __init__(self, db: Session):
        self.db = db

    def reboot(self, host: Host) -> None:
        PowerService(host.ip).reboot()

    def reboot_all(self) -> Tuple[int, List[str]]:
        hosts = self.db.query(Host).filter(Host.kind == HostKind.DISCOVERED).order_by(Host.id.asc()).all()
        rebooted = 0
        errors = []
        for host in hosts:
            try:
                self.reboot(host)
                rebooted += 1
            except NodeAPIError as e:
                logger.warning(f"Reboot of host {host.name} failed: {e.message}")
                errors.append(f"{host.name}: {e.message}")
        return rebooted, errors

    def refresh_facts(self, host: Host) -> Host:
        """
        Re-read facts from the node and import them.

        Raises:
            NodeAPIError: the node could not be queried
            FactImportError: the node reported a different primary MAC
        """
        facts = InventoryService(host.ip).facter()
        reported = normalize_mac(facts.get(settings.DISCOVERY_FACT))
        if reported != host.mac:
            raise FactImportError(
                f"Node {host.ip} reported primary MAC {reported or 'none'}, expected {host.mac}"
            )
        return FactImporter(self.db).import_host(facts)
