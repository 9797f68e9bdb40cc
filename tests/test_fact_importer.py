"""
Tests for fact import and host naming.
"""
from unittest.mock import patch

import pytest

from discovery_api.core.config import settings
from discovery_api.core.exceptions import FactImportError
from discovery_api.models import Host, HostKind, Organization, Location
from discovery_api.services.fact_importer import (
    FactImporter,
    normalize_facts,
    parse_memory_mb,
    parse_cpu_count,
    parse_disks,
)
from discovery_api.utils.hostname import normalize_mac, normalize_hostname, random_name


def test_import_creates_discovered_host(db_session, facts):
    host = FactImporter(db_session).import_host(facts)

    assert host.kind == HostKind.DISCOVERED
    assert host.name == "macaabbccddeeff"
    assert host.mac == "aa:bb:cc:dd:ee:ff"
    assert host.ip == "192.168.100.42"
    assert host.memory == 42001
    assert host.disk_count == 0
    assert host.disks_size == 0
    assert host.organization.name == settings.DISCOVERY_ORGANIZATION
    assert host.location.name == settings.DISCOVERY_LOCATION
    assert host.last_report is not None


def test_reimport_refreshes_same_host(db_session, facts):
    first = FactImporter(db_session).import_host(facts)
    second = FactImporter(db_session).import_host({**facts, "memorysize_mb": "1024"})

    assert second.id == first.id
    assert second.memory == 1024
    assert db_session.query(Host).count() == 1


def test_import_missing_mac_fails(db_session, facts):
    facts["discovery_bootif"] = "not-a-mac"

    with pytest.raises(FactImportError) as exc_info:
        FactImporter(db_session).import_host(facts)
    assert exc_info.value.message == "Unable to detect primary interface using MAC 'discovery_bootif' fact"


def test_import_of_provisioned_mac_fails(db_session, facts):
    host = FactImporter(db_session).import_host(facts)
    host.kind = HostKind.MANAGED
    db_session.commit()

    with pytest.raises(FactImportError):
        FactImporter(db_session).import_host(facts)


def test_import_uses_taxonomy_facts(db_session, facts):
    db_session.add(Organization(name="Lab"))
    db_session.add(Location(name="Rack 7"))
    db_session.commit()

    host = FactImporter(db_session).import_host(
        {**facts, "discovery_organization": "Lab", "discovery_location": "Rack 7"}
    )
    assert host.organization_name == "Lab"
    assert host.location_name == "Rack 7"


def test_import_without_organizations_leaves_org_empty(db_session, facts):
    with patch("discovery_api.core.config.settings.ORGANIZATIONS_ENABLED", False):
        host = FactImporter(db_session).import_host(facts)
    assert host.organization_id is None
    assert host.location_name == settings.DISCOVERY_LOCATION


def test_fact_naming_uses_hostname_facts(db_session, facts):
    with patch("discovery_api.core.config.settings.DISCOVERY_NAMING", "Fact"), \
            patch("discovery_api.core.config.settings.DISCOVERY_HOSTNAME_FACTS", ["serialnumber", "discovery_bootif"]):
        host = FactImporter(db_session).import_host({**facts, "serialnumber": "ABC 123"})
    assert host.name == "abc-123"


def test_fact_naming_prefixes_names_starting_with_digit(db_session, facts):
    with patch("discovery_api.core.config.settings.DISCOVERY_NAMING", "Fact"), \
            patch("discovery_api.core.config.settings.DISCOVERY_HOSTNAME_FACTS", ["serialnumber"]):
        host = FactImporter(db_session).import_host({**facts, "serialnumber": "42XYZ"})
    assert host.name == "mac42xyz"


def test_random_naming_is_stable_for_a_mac(db_session, facts):
    with patch("discovery_api.core.config.settings.DISCOVERY_NAMING", "Random-name"):
        host = FactImporter(db_session).import_host(facts)
    assert host.name == random_name("mac", seed="aa:bb:cc:dd:ee:ff")
    assert host.name.startswith("mac-")


def test_random_naming_avoids_taken_name(db_session, facts):
    taken = random_name("mac", seed="aa:bb:cc:dd:ee:ff")
    db_session.add(Host(kind=HostKind.DISCOVERED, name=taken, mac="02:00:00:00:03:33"))
    db_session.commit()

    with patch("discovery_api.core.config.settings.DISCOVERY_NAMING", "Random-name"):
        host = FactImporter(db_session).import_host(facts)
        again = FactImporter(db_session).import_host(facts)

    assert host.name != taken
    assert host.name == random_name("mac", seed="aa:bb:cc:dd:ee:ff-1")
    assert again.id == host.id
    assert again.name == host.name


def test_hardware_facts_are_parsed():
    facts = normalize_facts({
        "memorysize": "7.63 GB",
        "processorcount": 8,
        "blockdevices": "sda,sdb",
        "blockdevice_sda_size": "1073741824",
        "blockdevice_sdb_size": "536870912",
        "is_virtual": False,
        "partitions": {"sda1": {}},
    })

    assert facts["processorcount"] == "8"
    assert facts["is_virtual"] == "false"
    assert "partitions" not in facts
    assert parse_memory_mb(facts) == 7814
    assert parse_cpu_count(facts) == 8
    assert parse_disks(facts) == (2, 1536)


def test_physical_processor_count_wins():
    assert parse_cpu_count({"physicalprocessorcount": "2", "processorcount": "16"}) == 2


def test_invalid_memory_is_zero():
    assert parse_memory_mb({"memorysize_mb": "lots"}) == 0


def test_overflowing_numbers_are_zero():
    assert parse_memory_mb({"memorysize_mb": "inf"}) == 0
    assert parse_memory_mb({"memorysize_mb": "1e400"}) == 0
    assert parse_memory_mb({"memorysize": "9" * 400 + " MB"}) == 0
    assert parse_cpu_count({"processorcount": "inf"}) == 0
    assert parse_disks({"blockdevices": "sda", "blockdevice_sda_size": "inf"}) == (1, 0)


@pytest.mark.parametrize("value,expected", [
    ("AA:BB:CC:DD:EE:FF", "aa:bb:cc:dd:ee:ff"),
    ("aa-bb-cc-dd-ee-ff", "aa:bb:cc:dd:ee:ff"),
    ("aabb.ccdd.eeff", "aa:bb:cc:dd:ee:ff"),
    ("aa:bb:cc", None),
    (None, None),
])
def test_normalize_mac(value, expected):
    assert normalize_mac(value) == expected


def test_normalize_hostname():
    assert normalize_hostname("Web_Server.01") == "web-server-01"
    assert normalize_hostname("00:11:22", "mac") == "mac001122"
