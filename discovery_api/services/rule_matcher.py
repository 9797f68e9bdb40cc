"""
Service for finding the discovery rule that applies to a discovered host.
"""
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from discovery_api.core.config import settings
from discovery_api.core.exceptions import InvalidSearchError
from discovery_api.models.discovery_rule import DiscoveryRule
from discovery_api.models.host import Host, HostKind
from discovery_api.utils.search_query import host_matches

logger = logging.getLogger(__name__)


class RuleMatcher:
    """Evaluates enabled rules in priority order."""

    def __init__(self, db: Session):
        self.db = db

    def enabled_rules(self) -> List[DiscoveryRule]:
        return (
            self.db.query(DiscoveryRule)
            .filter(DiscoveryRule.enabled == True)  # noqa: E712
            .order_by(DiscoveryRule.priority.asc(), DiscoveryRule.id.asc())
            .all()
        )

    def find_rule(self, host: Host) -> Optional[DiscoveryRule]:
        """
        Return the first rule that applies to the host, or None.

        A rule applies when its taxonomy scope contains the host, its search
        matches and its max_count has not been reached.
        """
        for rule in self.enabled_rules():
            if self.rule_applies(rule, host):
                logger.info(f"Host {host.name} matched discovery rule '{rule.name}' (priority {rule.priority})")
                return rule
        logger.debug(f"No discovery rule matched host {host.name}")
        return None

    def rule_applies(self, rule: DiscoveryRule, host: Host) -> bool:
        if not self.in_scope(rule, host):
            return False

        try:
            if not host_matches(rule.search, host):
                return False
        except InvalidSearchError as e:
            logger.warning(f"Skipping discovery rule '{rule.name}' with invalid search: {e.message}")
            return False

        if rule.max_count and self.provisioned_count(rule) >= rule.max_count:
            logger.info(f"Discovery rule '{rule.name}' reached its limit of {rule.max_count} hosts")
            return False
        return True

    @staticmethod
    def in_scope(rule: DiscoveryRule, host: Host) -> bool:
        if settings.ORGANIZATIONS_ENABLED:
            if host.organization_id is None or host.organization_id not in {o.id for o in rule.organizations}:
                return False
        if settings.LOCATIONS_ENABLED:
            if host.location_id is None or host.location_id not in {l.id for l in rule.locations}:
                return False
        return True

    def provisioned_count(self, rule: DiscoveryRule) -> int:
        return (
            self.db.query(func.count(Host.id))
            .filter(Host.discovery_rule_id == rule.id, Host.kind == HostKind.MANAGED)
            .scalar()
        )
