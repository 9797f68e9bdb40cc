"""
Pytest configuration and fixtures.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from unittest.mock import patch

from discovery_api.core.database import Base, get_db
from discovery_api.main import app

# Import all models to ensure they register with Base.metadata
from discovery_api.models import (
    Host,
    Hostgroup,
    DiscoveryRule,
    Organization,
    Location,
    APIKey,
    ActivityLog,
)
from discovery_api.services.taxonomy_seeder import ensure_default_taxonomies

# Use file-based SQLite for testing (more reliable than in-memory)
TEST_DATABASE_URL = "sqlite:///./test_host_discovery.db"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    pool_pre_ping=False,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# Facts reported by a freshly booted discovery image
BASE_FACTS = {
    "interfaces": "lo,eth0",
    "ipaddress": "192.168.100.42",
    "ipaddress_eth0": "192.168.100.42",
    "macaddress_eth0": "AA:BB:CC:DD:EE:FF",
    "discovery_bootif": "AA:BB:CC:DD:EE:FF",
    "memorysize_mb": "42000.42",
    "discovery_version": "3.0.0",
}


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """
    Create all tables before tests run and drop them after the session.
    """
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function", autouse=True)
def clean_database():
    """Empty every table and reseed the default organization and location."""
    db = TestingSessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
        ensure_default_taxonomies(db)
    finally:
        db.close()
    yield


@pytest.fixture(scope="function", autouse=True)
def disable_api_key():
    """Disable API key authentication for all tests."""
    with patch("discovery_api.core.config.settings.API_KEY", None):
        yield


@pytest.fixture(scope="function", autouse=True)
def stub_reboot():
    """Never reach out to a real discovery node."""
    with patch("discovery_api.services.node_api.PowerService.reboot", return_value=True) as mock_reboot:
        yield mock_reboot


def override_get_db():
    """Override get_db dependency to use test database session."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client():
    """
    Test client with the database dependency pointed at the test database.

    API key authentication is disabled by the autouse fixture, so every
    request runs as admin.
    """
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_with_auth():
    """
    Test client with API key authentication enabled (API_KEY="test-key").
    """
    app.dependency_overrides[get_db] = override_get_db
    with patch("discovery_api.core.config.settings.API_KEY", "test-key"):
        yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db_session():
    """
    Provide a database session for tests that need direct DB access.
    """
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()


@pytest.fixture
def facts():
    return dict(BASE_FACTS)


@pytest.fixture
def make_hostgroup(db_session):
    """Factory for host groups that pass provisioning validation."""
    def _make(name="base", **kwargs):
        values = {"operatingsystem": "RedHat 9.2", "root_pass": "changeme123"}
        values.update(kwargs)
        hostgroup = Hostgroup(name=name, **values)
        db_session.add(hostgroup)
        db_session.commit()
        db_session.refresh(hostgroup)
        return hostgroup
    return _make


@pytest.fixture
def make_rule(db_session, make_hostgroup):
    """
    Factory for discovery rules.

    By default the rule is scoped to the default organization and location.
    Pass organizations=[] / locations=[] for an unscoped rule.
    """
    counter = {"n": 0}

    def _make(search="facts.somefact = abc", hostgroup=None, organizations=None, locations=None, **kwargs):
        counter["n"] += 1
        if hostgroup is None:
            hostgroup = make_hostgroup(name=f"hostgroup-{counter['n']}")
        if organizations is None:
            organizations = db_session.query(Organization).all()
        if locations is None:
            locations = db_session.query(Location).all()
        values = {"name": f"rule-{counter['n']}", "priority": 1}
        values.update(kwargs)
        rule = DiscoveryRule(search=search, hostgroup=hostgroup, **values)
        rule.organizations = list(organizations)
        rule.locations = list(locations)
        db_session.add(rule)
        db_session.commit()
        db_session.refresh(rule)
        return rule
    return _make
