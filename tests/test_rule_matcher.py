"""
Tests for discovery rule matching and provisioning services.
"""
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from discovery_api.core.exceptions import ProvisioningError, RuleNotFoundError
from discovery_api.models import HostKind
from discovery_api.services.fact_importer import FactImporter
from discovery_api.services.provisioning_service import (
    ProvisioningService,
    parse_version,
    render_hostname,
)
from discovery_api.services.rule_matcher import RuleMatcher


def second_host_facts(facts, mac="11:22:33:44:55:66"):
    return {**facts, "discovery_bootif": mac, "macaddress_eth0": mac}


def test_lowest_priority_value_wins(db_session, facts, make_rule):
    host = FactImporter(db_session).import_host({**facts, "somefact": "abc"})
    make_rule(name="generic", search="", priority=50)
    specific = make_rule(name="specific", search="facts.somefact = abc", priority=5)

    assert RuleMatcher(db_session).find_rule(host).id == specific.id


def test_equal_priority_falls_back_to_creation_order(db_session, facts, make_rule):
    host = FactImporter(db_session).import_host(facts)
    first = make_rule(name="first", search="", priority=1)
    make_rule(name="second", search="", priority=1)

    assert RuleMatcher(db_session).find_rule(host).id == first.id


def test_disabled_rules_are_ignored(db_session, facts, make_rule):
    host = FactImporter(db_session).import_host({**facts, "somefact": "abc"})
    make_rule(search="facts.somefact = abc", enabled=False)

    assert RuleMatcher(db_session).find_rule(host) is None


def test_rule_with_invalid_search_is_skipped(db_session, facts, make_rule):
    host = FactImporter(db_session).import_host(facts)
    make_rule(name="broken", search="bogus = (", priority=1)
    valid = make_rule(name="valid", search="", priority=2)

    assert RuleMatcher(db_session).find_rule(host).id == valid.id


def test_location_scope_is_checked(db_session, facts, make_rule):
    host = FactImporter(db_session).import_host(facts)
    make_rule(search="", locations=[])

    assert RuleMatcher(db_session).find_rule(host) is None
    with patch("discovery_api.core.config.settings.LOCATIONS_ENABLED", False):
        assert RuleMatcher(db_session).find_rule(host) is not None


def test_max_count_limits_provisioning(db_session, facts, make_rule):
    rule = make_rule(search="facts.somefact = abc", max_count=1)
    first = FactImporter(db_session).import_host({**facts, "somefact": "abc"})
    second = FactImporter(db_session).import_host({**second_host_facts(facts), "somefact": "abc"})

    service = ProvisioningService(db_session)
    assert service.auto_provision(first).id == rule.id
    assert RuleMatcher(db_session).provisioned_count(rule) == 1

    with pytest.raises(RuleNotFoundError):
        service.auto_provision(second)
    assert second.kind == HostKind.DISCOVERED


def test_auto_provision_all_skips_hosts_without_rule(db_session, facts, make_rule):
    make_rule(search="facts.somefact = abc")
    FactImporter(db_session).import_host({**facts, "somefact": "abc"})
    FactImporter(db_session).import_host({**second_host_facts(facts), "somefact": "xyz"})

    provisioned, errors = ProvisioningService(db_session).auto_provision_all()
    assert provisioned == 1
    assert errors == []


def test_auto_provision_all_collects_errors(db_session, facts, make_rule, make_hostgroup):
    make_rule(search="", hostgroup=make_hostgroup(name="no-os", operatingsystem=None))
    host = FactImporter(db_session).import_host(facts)

    provisioned, errors = ProvisioningService(db_session).auto_provision_all()
    assert provisioned == 0
    assert errors == [f"{host.name}: Host group no-os has no operating system"]


def test_rule_hostname_template_renames_host(db_session, facts, make_rule):
    host = FactImporter(db_session).import_host({**facts, "serialnumber": "SN42"})
    make_rule(search="", hostname="node-{facts[serialnumber]}")

    ProvisioningService(db_session).auto_provision(host)
    assert host.name == "node-sn42"
    assert host.comment.startswith("Auto-discovered and provisioned via rule")


def test_provision_without_reboot_setting(db_session, facts, make_hostgroup, stub_reboot):
    host = FactImporter(db_session).import_host(facts)

    with patch("discovery_api.core.config.settings.DISCOVERY_REBOOT", False):
        ProvisioningService(db_session).provision(host, make_hostgroup())

    assert host.kind == HostKind.MANAGED
    stub_reboot.assert_not_called()


def test_provision_rejects_taken_name(db_session, facts, make_hostgroup):
    FactImporter(db_session).import_host(second_host_facts(facts))
    host = FactImporter(db_session).import_host(facts)

    with pytest.raises(ProvisioningError):
        ProvisioningService(db_session).provision(host, make_hostgroup(), name="mac112233445566")


def test_render_hostname_template():
    host = SimpleNamespace(name="macaabbccddeeff", mac="aa:bb:cc:dd:ee:ff", ip="10.0.0.5", facts={"rack": "R7"})

    assert render_hostname("", host) == "macaabbccddeeff"
    assert render_hostname("node-{ip}", host) == "node-10-0-0-5"
    assert render_hostname("{facts[rack]}-{mac}", host) == "r7-aabbccddeeff"
    assert len(render_hostname("n{rand}", host)) == 6

    with pytest.raises(ProvisioningError):
        render_hostname("{facts[missing]}", host)
    with pytest.raises(ProvisioningError):
        render_hostname("{unknown}", host)


def test_parse_version():
    assert parse_version("3.0.0") == (3, 0, 0)
    assert parse_version("2.9.9") < (3, 0)
    assert parse_version("3.1.0-rc1") >= (3, 0)
    assert parse_version(None) == ()


def test_can_kexec_requires_fact_version_and_boot_files(make_hostgroup):
    with_files = make_hostgroup(name="kexec", kernel_url="http://x/vmlinuz", initrd_url="http://x/initrd")
    without_files = make_hostgroup(name="plain")
    kexec_facts = {"discovery_kexec": "kexec-tools 2.0.8", "discovery_version": "3.0.0"}

    assert ProvisioningService.can_kexec(SimpleNamespace(facts=kexec_facts), with_files)
    assert not ProvisioningService.can_kexec(SimpleNamespace(facts=kexec_facts), without_files)
    assert not ProvisioningService.can_kexec(
        SimpleNamespace(facts={**kexec_facts, "discovery_version": "2.1"}), with_files
    )
    assert not ProvisioningService.can_kexec(SimpleNamespace(facts={"discovery_version": "3.0.0"}), with_files)
