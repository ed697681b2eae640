"""Shared test fixtures for pytest"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from ldap3 import Server, Connection, MOCK_SYNC

from rolesync.connectors.base import DirectoryReader, DirectoryEntry
from rolesync.connectors.ldap import (
    LDAPDirectoryReader,
    ROLES_SEARCH,
    RESOURCES_SEARCH,
    ASSOCIATIONS_SEARCH,
)
from rolesync.core.exceptions import DirectorySearchError
from rolesync.db.session import create_db_engine, create_session_factory, init_schema

BIND_DN = "cn=admin,o=System"
BIND_PASSWORD = "secret"

WATERMARK = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


def role_dn(cn: str) -> str:
    return f"cn={cn},{ROLES_SEARCH.base}"


def resource_dn(cn: str) -> str:
    return f"cn={cn},{RESOURCES_SEARCH.base}"


def association_dn(cn: str) -> str:
    return f"cn={cn},{ASSOCIATIONS_SEARCH.base}"


def naive(value: datetime) -> datetime:
    """SQLite hands timestamps back without tzinfo."""
    return value.replace(tzinfo=None)


class FakeDirectory:
    """ldap3 mock server seeded with the three RoleConfig containers."""

    def __init__(self):
        self.server = Server("fake_directory")
        self.conn = Connection(
            self.server, user=BIND_DN, password=BIND_PASSWORD, client_strategy=MOCK_SYNC
        )
        self.conn.strategy.add_entry(BIND_DN, {"userPassword": BIND_PASSWORD, "sn": "admin"})
        for spec in (ROLES_SEARCH, RESOURCES_SEARCH, ASSOCIATIONS_SEARCH):
            cn = spec.base.split(",")[0].split("=")[1]
            self.conn.strategy.add_entry(spec.base, {"objectClass": ["top", "container"], "cn": cn})
        self.conn.bind()

    def add_role(
        self,
        cn: str,
        level: str = "10",
        names: str = "",
        descriptions: str = "",
        categories: Optional[List[str]] = None,
        parents: Optional[List[str]] = None,
    ) -> str:
        dn = role_dn(cn)
        attributes = {"objectClass": ["top", "nrfRole"], "cn": cn, "nrfRoleLevel": level}
        if names:
            attributes["nrfLocalizedNames"] = names
        if descriptions:
            attributes["nrfLocalizedDescrs"] = descriptions
        if categories:
            attributes["nrfRoleCategoryKey"] = categories
        if parents:
            attributes["nrfParentRoles"] = parents
        self.conn.strategy.add_entry(dn, attributes)
        return dn

    def add_resource(self, cn: str, names: str = "", entitlement_ref: str = "") -> str:
        dn = resource_dn(cn)
        attributes = {
            "objectClass": ["top", "nrfResource"],
            "cn": cn,
            "nrfCategoryKey": "default",
            "nrfAllowMulti": "true",
        }
        if names:
            attributes["nrfLocalizedNames"] = names
        if entitlement_ref:
            attributes["nrfEntitlementRef"] = entitlement_ref
        self.conn.strategy.add_entry(dn, attributes)
        return dn

    def add_association(
        self, cn: str, role: str, resource: str, params: str = "", status: str = "50"
    ) -> str:
        dn = association_dn(cn)
        attributes = {
            "objectClass": ["top", "nrfResourceAssociation"],
            "cn": cn,
            "nrfRole": role,
            "nrfResource": resource,
            "nrfStatus": status,
            "createTimestamp": "20250101120000Z",
            "modifyTimestamp": "20250301120000Z",
        }
        if params:
            attributes["nrfDynamicParmVals"] = params
        self.conn.strategy.add_entry(dn, attributes)
        return dn

    def remove(self, dn: str) -> None:
        self.conn.strategy.remove_entry(dn)


class StaticReader(DirectoryReader):
    """In-memory reader: fixed entries per search base, optional failing bases."""

    reader_type = "static"

    def __init__(self, entries: Optional[Dict[str, List[DirectoryEntry]]] = None, failing=()):
        self.entries = entries or {}
        self.failing = set(failing)
        self.searches: List[str] = []

    def connect(self) -> None:
        pass

    def test_connection(self) -> bool:
        return True

    def search(self, base, search_filter, attributes):
        self.searches.append(base)
        if base in self.failing:
            raise DirectorySearchError(f"LDAP search error under {base}: unavailable")
        return list(self.entries.get(base, []))

    def close(self) -> None:
        pass


@pytest.fixture
def engine():
    """In-memory SQLite store with the schema created"""
    engine = create_db_engine("sqlite://")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def watermark():
    return WATERMARK


@pytest.fixture
def directory():
    """Fake LDAP directory"""
    return FakeDirectory()


@pytest.fixture
def reader(directory):
    """Bound reader against the fake directory"""
    reader = LDAPDirectoryReader(
        user=BIND_DN,
        password=BIND_PASSWORD,
        server=directory.server,
        client_strategy=MOCK_SYNC,
    )
    reader.connect()
    yield reader
    reader.close()
