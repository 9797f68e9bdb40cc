"""
Tests for the /api/v2/discovered_hosts endpoints.
"""
from unittest.mock import patch

from discovery_api.core.config import settings
from discovery_api.models import Host, HostKind, Organization, Location
from discovery_api.services.fact_importer import FactImporter


def import_host(db_session, facts):
    return FactImporter(db_session).import_host(facts)


def reload_host(db_session, host_id):
    db_session.expire_all()
    return db_session.query(Host).filter(Host.id == host_id).first()


def test_get_index(client, db_session, facts):
    import_host(db_session, facts)

    response = client.get("/api/v2/discovered_hosts")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["name"] == "macaabbccddeeff"


def test_index_search_filters_hosts(client, db_session, facts):
    import_host(db_session, {**facts, "somefact": "abc"})
    other = {
        **facts,
        "discovery_bootif": "11:22:33:44:55:66",
        "macaddress_eth0": "11:22:33:44:55:66",
        "somefact": "xyz",
    }
    import_host(db_session, other)

    response = client.get("/api/v2/discovered_hosts", params={"search": "facts.somefact = abc"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["mac"] == "aa:bb:cc:dd:ee:ff"


def test_index_invalid_search_is_rejected(client):
    response = client.get("/api/v2/discovered_hosts", params={"search": "bogusfield = 1"})
    assert response.status_code == 422
    assert "not recognized" in response.json()["error"]["message"]


def test_show_host(client, db_session, facts):
    db_session.add(Organization(name="SomeOrg"))
    db_session.add(Location(name="SomeLoc"))
    db_session.commit()
    host = import_host(db_session, facts)

    response = client.get(f"/api/v2/discovered_hosts/{host.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "macaabbccddeeff"
    assert data["memory"] == 42001
    assert data["disk_count"] == 0
    assert data["disks_size"] == 0
    assert data["organization_name"] == settings.DISCOVERY_ORGANIZATION
    assert data["location_name"] == settings.DISCOVERY_LOCATION
    assert data["facts"]["discovery_version"] == "3.0.0"


def test_show_host_by_name(client, db_session, facts):
    host = import_host(db_session, facts)

    response = client.get(f"/api/v2/discovered_hosts/{host.name}")
    assert response.status_code == 200
    assert response.json()["id"] == host.id


def test_show_missing_host(client):
    response = client.get("/api/v2/discovered_hosts/9999")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Resource host not found by id '9999'"


def test_delete_discovered_host(client, db_session, facts):
    host = import_host(db_session, facts)

    response = client.delete(f"/api/v2/discovered_hosts/{host.id}")
    assert response.status_code == 200
    assert response.json()["name"] == host.name
    assert reload_host(db_session, host.id) is None


def test_upload_facts_creates_host(client, db_session, facts):
    response = client.post("/api/v2/discovered_hosts/facts", json={"facts": facts})
    assert response.status_code == 201
    data = response.json()
    assert data["kind"] == "discovered"
    assert data["name"] == "macaabbccddeeff"
    assert data["ip"] == "192.168.100.42"
    assert db_session.query(Host).count() == 1


def test_upload_facts_refreshes_existing_host(client, db_session, facts):
    host = import_host(db_session, facts)

    response = client.post(
        "/api/v2/discovered_hosts/facts",
        json={"facts": {**facts, "memorysize_mb": "2048", "ipaddress_eth0": "192.168.100.43"}},
    )
    assert response.status_code == 201
    assert response.json()["id"] == host.id

    refreshed = reload_host(db_session, host.id)
    assert refreshed.memory == 2048
    assert refreshed.ip == "192.168.100.43"


def test_upload_facts_without_primary_mac(client, facts):
    facts.pop("discovery_bootif")

    response = client.post("/api/v2/discovered_hosts/facts", json={"facts": facts})
    assert response.status_code == 422
    assert response.json()["error"]["message"] == (
        "Unable to detect primary interface using MAC 'discovery_bootif' fact"
    )


def test_auto_provision_success_via_upload(client, db_session, facts, make_rule):
    make_rule(name="rule", search="facts.somefact = abc")

    with patch("discovery_api.core.config.settings.DISCOVERY_AUTO", True):
        response = client.post("/api/v2/discovered_hosts/facts", json={"facts": {**facts, "somefact": "abc"}})

    assert response.status_code == 201
    assert "created_at" in response.text
    assert response.json()["kind"] == "managed"
    host = db_session.query(Host).first()
    assert host.comment == "Auto-discovered and provisioned via rule 'rule'"


def test_upload_without_matching_rule_stays_discovered(client, db_session, facts, make_rule):
    make_rule(search="facts.somefact = other")

    with patch("discovery_api.core.config.settings.DISCOVERY_AUTO", True):
        response = client.post("/api/v2/discovered_hosts/facts", json={"facts": {**facts, "somefact": "abc"}})

    assert response.status_code == 201
    assert response.json()["kind"] == "discovered"


def test_auto_provision_success(client, db_session, facts, make_rule, stub_reboot):
    host = import_host(db_session, {**facts, "somefact": "abc", "discovery_version": "2.9.9"})
    rule = make_rule(search="facts.somefact = abc")

    response = client.post(f"/api/v2/discovered_hosts/{host.id}/auto_provision")
    assert response.status_code == 200
    assert response.json()["message"] == f"Host {host.name} was provisioned with rule {rule.name}"

    managed_host = reload_host(db_session, host.id)
    assert managed_host.kind == HostKind.MANAGED
    assert managed_host.build is True
    assert managed_host.discovery_rule_id == rule.id
    stub_reboot.assert_called_once()


def test_auto_provision_kexec_success(client, db_session, facts, make_rule, make_hostgroup, stub_reboot):
    host = import_host(
        db_session,
        {**facts, "somefact": "abc", "discovery_kexec": "kexec-tools 2.0.8 released 15 February 2015"},
    )
    hostgroup = make_hostgroup(
        name="kexec",
        kernel_url="http://boot.example.com/vmlinuz",
        initrd_url="http://boot.example.com/initrd.img",
    )
    rule = make_rule(search="facts.somefact = abc", hostgroup=hostgroup)

    with patch("discovery_api.services.node_api.PowerService.kexec", return_value=True) as mock_kexec:
        response = client.post(f"/api/v2/discovered_hosts/{host.id}/auto_provision")

    assert response.status_code == 200
    assert response.json()["message"] == f"Host {host.name} was provisioned with rule {rule.name}"
    assert reload_host(db_session, host.id).build is True
    mock_kexec.assert_called_once()
    payload = mock_kexec.call_args[0][0]
    assert payload["kernel"] == "http://boot.example.com/vmlinuz"
    assert payload["initram"] == "http://boot.example.com/initrd.img"
    stub_reboot.assert_not_called()


def test_auto_provision_with_wrong_org_or_loc_fail(client, db_session, facts, make_rule):
    host = import_host(db_session, {**facts, "somefact": "abc"})
    make_rule(search="facts.somefact = abc", organizations=[], locations=[])

    response = client.post(f"/api/v2/discovered_hosts/{host.id}/auto_provision")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == f"No rule found for host {host.name}"


def test_auto_provision_with_wrong_disabled_org_success(client, db_session, facts, make_rule):
    host = import_host(db_session, {**facts, "somefact": "abc"})
    make_rule(search="facts.somefact = abc", organizations=[])

    with patch("discovery_api.core.config.settings.ORGANIZATIONS_ENABLED", False):
        response = client.post(f"/api/v2/discovered_hosts/{host.id}/auto_provision")

    assert response.status_code == 200
    assert host.name in response.text


def test_auto_provision_success_and_delete(client, db_session, facts, make_rule):
    host = import_host(db_session, {**facts, "somefact": "abc"})
    make_rule(search="facts.somefact = abc")

    response = client.post(f"/api/v2/discovered_hosts/{host.id}/auto_provision")
    assert response.status_code == 200

    # the managed host keeps the discovered host's id
    response = client.delete(f"/api/v2/hosts/{host.id}")
    assert response.status_code == 200
    assert host.name in response.text
    assert reload_host(db_session, host.id) is None


def test_auto_provision_no_rule_error(client, db_session, facts):
    host = import_host(db_session, {**facts, "somefact": "abc"})

    response = client.post(f"/api/v2/discovered_hosts/{host.id}/auto_provision")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == f"No rule found for host {host.name}"


def test_auto_provision_power_failure_keeps_host_discovered(client, db_session, facts, make_rule, stub_reboot):
    from discovery_api.core.exceptions import NodeAPIError

    host = import_host(db_session, {**facts, "somefact": "abc"})
    make_rule(search="facts.somefact = abc")
    stub_reboot.side_effect = NodeAPIError("Unable to reach node 192.168.100.42")

    response = client.post(f"/api/v2/discovered_hosts/{host.id}/auto_provision")
    assert response.status_code == 502

    unchanged = reload_host(db_session, host.id)
    assert unchanged.kind == HostKind.DISCOVERED
    assert unchanged.build is False


def test_auto_provision_all_success(client, db_session, facts, make_rule):
    host = import_host(db_session, {**facts, "somefact": "abc"})
    make_rule(search="facts.somefact = abc")

    response = client.post("/api/v2/discovered_hosts/auto_provision_all")
    assert response.status_code == 200
    assert "1 discovered hosts were provisioned" in response.text
    assert reload_host(db_session, host.id).build is True


def test_auto_provision_all_no_rule_success(client, db_session, facts):
    import_host(db_session, {**facts, "somefact": "abc"})

    response = client.post("/api/v2/discovered_hosts/auto_provision_all")
    assert response.status_code == 200
    assert "0 discovered hosts were provisioned" in response.text


def test_manual_provision_with_new_name(client, db_session, facts, make_hostgroup):
    host = import_host(db_session, facts)
    hostgroup = make_hostgroup()

    response = client.put(
        f"/api/v2/discovered_hosts/{host.id}",
        json={"hostgroup_id": hostgroup.id, "name": "web01"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == host.id
    assert data["name"] == "web01"
    assert data["kind"] == "managed"
    assert data["hostgroup_name"] == hostgroup.name
    assert data["build"] is True


def test_manual_provision_requires_valid_hostgroup(client, db_session, facts, make_hostgroup):
    host = import_host(db_session, facts)
    hostgroup = make_hostgroup(root_pass="short")

    response = client.put(f"/api/v2/discovered_hosts/{host.id}", json={"hostgroup_id": hostgroup.id})
    assert response.status_code == 422
    assert "Root password" in response.json()["error"]["message"]
    assert reload_host(db_session, host.id).kind == HostKind.DISCOVERED


def test_manual_provision_rejects_name_without_valid_characters(client, db_session, facts, make_hostgroup):
    host = import_host(db_session, facts)
    hostgroup = make_hostgroup()

    response = client.put(f"/api/v2/discovered_hosts/{host.id}", json={"hostgroup_id": hostgroup.id, "name": "!!!"})
    assert response.status_code == 422
    assert response.json()["error"]["message"] == "Name '!!!' is not a valid host name"

    unchanged = reload_host(db_session, host.id)
    assert unchanged.kind == HostKind.DISCOVERED
    assert unchanged.name == "macaabbccddeeff"


def test_upload_facts_with_overflowing_numbers(client, facts):
    response = client.post(
        "/api/v2/discovered_hosts/facts",
        json={"facts": {**facts, "memorysize_mb": "inf", "processorcount": "1e400"}},
    )
    assert response.status_code == 201
    assert response.json()["memory"] == 0
    assert response.json()["cpu_count"] == 0


def test_reboot_host(client, db_session, facts, stub_reboot):
    host = import_host(db_session, facts)

    response = client.post(f"/api/v2/discovered_hosts/{host.id}/reboot")
    assert response.status_code == 200
    assert response.json()["message"] == f"Host {host.name} is rebooting"
    stub_reboot.assert_called_once()


def test_reboot_all(client, db_session, facts, stub_reboot):
    import_host(db_session, facts)

    response = client.post("/api/v2/discovered_hosts/reboot_all")
    assert response.status_code == 200
    assert response.json()["message"] == "1 discovered hosts are rebooting"


def test_refresh_facts(client, db_session, facts):
    host = import_host(db_session, facts)
    reported = {**facts, "memorysize_mb": "1024", "somefact": "new"}

    with patch("discovery_api.services.node_api.InventoryService.facter", return_value=reported):
        response = client.post(f"/api/v2/discovered_hosts/{host.id}/refresh_facts")

    assert response.status_code == 200
    data = response.json()
    assert data["memory"] == 1024
    assert data["facts"]["somefact"] == "new"


def test_refresh_facts_rejects_other_mac(client, db_session, facts):
    host = import_host(db_session, facts)
    reported = {**facts, "discovery_bootif": "11:22:33:44:55:66"}

    with patch("discovery_api.services.node_api.InventoryService.facter", return_value=reported):
        response = client.post(f"/api/v2/discovered_hosts/{host.id}/refresh_facts")

    assert response.status_code == 422
    assert "expected aa:bb:cc:dd:ee:ff" in response.json()["error"]["message"]
