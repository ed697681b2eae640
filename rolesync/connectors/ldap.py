"""LDAP directory reader built on ldap3, plus the fixed entity searches."""

import logging
from typing import Dict, Any, List, Optional

from ldap3 import Server, Connection, SUBTREE, DEREF_NEVER, NONE, SYNC
from ldap3.core.exceptions import LDAPException

from rolesync.connectors.base import DirectoryReader, DirectoryEntry, SearchSpec
from rolesync.core.exceptions import DirectoryBindError, DirectorySearchError

logger = logging.getLogger(__name__)

ROLES_SEARCH = SearchSpec(
    name="roles",
    base="cn=RoleDefs,cn=RoleConfig,cn=AppConfig,cn=UserApplication,cn=DriverSet,o=System",
    search_filter="(objectClass=nrfRole)",
    attributes=[
        "nrfRoleLevel", "nrfLocalizedNames", "nrfLocalizedDescrs",
        "nrfRoleCategoryKey", "nrfParentRoles",
    ],
)

RESOURCES_SEARCH = SearchSpec(
    name="resources",
    base="cn=ResourceDefs,cn=RoleConfig,cn=AppConfig,cn=UserApplication,cn=DriverSet,o=System",
    search_filter="(objectClass=nrfResource)",
    attributes=[
        "nrfLocalizedNames", "nrfLocalizedDescrs", "nrfCategoryKey",
        "nrfAllowMulti", "nrfEntitlementRef",
    ],
)

ASSOCIATIONS_SEARCH = SearchSpec(
    name="associations",
    base="cn=ResourceAssociations,cn=RoleConfig,cn=AppConfig,cn=UserApplication,cn=DriverSet,o=System",
    search_filter="(&(objectClass=nrfResourceAssociation)(nrfStatus=50))",
    attributes=[
        "nrfRole", "nrfResource", "nrfDynamicParmVals", "nrfStatus",
        "createTimestamp", "modifyTimestamp",
    ],
)


def _to_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class LDAPDirectoryReader(DirectoryReader):
    """Plain LDAP reader with a simple bind.

    ``server`` and ``client_strategy`` can be passed in to run against an
    ldap3 mock server.
    """

    reader_type = "ldap"

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 389,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_ssl: bool = False,
        connect_timeout: int = 10,
        server: Optional[Server] = None,
        client_strategy: str = SYNC,
    ):
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._use_ssl = use_ssl
        self._connect_timeout = connect_timeout
        self._server = server
        self._client_strategy = client_strategy
        self._connection: Optional[Connection] = None

    @classmethod
    def from_settings(cls, settings) -> "LDAPDirectoryReader":
        return cls(
            host=settings.LDAP_HOST,
            port=settings.LDAP_PORT,
            user=settings.LDAP_USERNAME,
            password=settings.LDAP_PASSWORD,
            use_ssl=settings.LDAP_USE_SSL,
            connect_timeout=settings.LDAP_CONNECT_TIMEOUT,
        )

    def connect(self) -> None:
        if self._connection is not None and self._connection.bound:
            return
        try:
            if self._server is None:
                self._server = Server(
                    self._host,
                    port=self._port,
                    use_ssl=self._use_ssl,
                    get_info=NONE,
                    connect_timeout=self._connect_timeout,
                )
            conn = Connection(
                self._server,
                user=self._user,
                password=self._password,
                client_strategy=self._client_strategy,
                read_only=True,
            )
            bound = conn.bind()
        except LDAPException as e:
            raise DirectoryBindError(f"Connecting to LDAP failed: {e}") from e
        if not bound:
            raise DirectoryBindError(
                f"Binding to LDAP as {self._user} failed: {conn.result.get('description')}"
            )
        self._connection = conn
        logger.info("Bound to LDAP %s as %s", self._server.host, self._user)

    def test_connection(self) -> bool:
        return self._connection is not None and self._connection.bound

    def search(
        self, base: str, search_filter: str, attributes: List[str]
    ) -> List[DirectoryEntry]:
        if self._connection is None:
            raise DirectorySearchError("LDAP connection is not open")
        try:
            self._connection.search(
                search_base=base,
                search_filter=search_filter,
                search_scope=SUBTREE,
                dereference_aliases=DEREF_NEVER,
                attributes=attributes,
                size_limit=0,
                time_limit=0,
            )
        except LDAPException as e:
            raise DirectorySearchError(f"LDAP search error: {e}") from e

        result = self._connection.result or {}
        if result.get("result", 0) != 0:
            raise DirectorySearchError(
                f"LDAP search error under {base}: {result.get('description')} "
                f"{result.get('message') or ''}".strip()
            )
        return [
            self._to_entry(item)
            for item in self._connection.response or []
            if item.get("type") == "searchResEntry"
        ]

    @staticmethod
    def _to_entry(item: Dict[str, Any]) -> DirectoryEntry:
        attributes: Dict[str, List[str]] = {}
        for name, values in (item.get("raw_attributes") or {}).items():
            if not isinstance(values, (list, tuple)):
                values = [values]
            attributes[name] = [_to_text(v) for v in values]
        return DirectoryEntry(item["dn"], attributes)

    def close(self) -> None:
        if self._connection is not None:
            try:
                self._connection.unbind()
            except LDAPException as e:
                logger.debug("Ignoring error while unbinding: %s", e)
            self._connection = None
