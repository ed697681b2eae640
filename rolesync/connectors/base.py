"""Abstract base class for directory readers and the entries they return."""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional


class DirectoryEntry:
    """A single directory entry: its DN plus multi-valued string attributes.

    Attribute names are matched case-insensitively, as the directory does.
    """

    def __init__(self, dn: str, attributes: Optional[Dict[str, List[str]]] = None):
        self.dn = dn
        self.attributes: Dict[str, List[str]] = {}
        self._names: Dict[str, str] = {}
        for name, values in (attributes or {}).items():
            self._names[name.lower()] = name
            self.attributes[name] = list(values)

    def get_values(self, name: str) -> List[str]:
        """All values of an attribute, empty when absent."""
        key = self._names.get(name.lower())
        if key is None:
            return []
        return list(self.attributes[key])

    def get_value(self, name: str) -> str:
        """First value of an attribute, empty string when absent."""
        values = self.get_values(name)
        return values[0] if values else ""

    def to_dict(self) -> Dict[str, Any]:
        return {"dn": self.dn, "attributes": self.attributes}

    def __repr__(self) -> str:
        return f"DirectoryEntry(dn={self.dn!r})"


class SearchSpec:
    """A fixed subtree search: one per synchronized entity type."""

    def __init__(self, name: str, base: str, search_filter: str, attributes: List[str]):
        self.name = name
        self.base = base
        self.search_filter = search_filter
        self.attributes = list(attributes)

    def with_base(self, base: Optional[str]) -> "SearchSpec":
        if not base:
            return self
        return SearchSpec(self.name, base, self.search_filter, self.attributes)


class DirectoryReader(ABC):
    """Base class for directory readers.

    Subclasses must implement connect, test_connection, search and close.
    """

    @abstractmethod
    def connect(self) -> None:
        """Open and bind the connection."""
        ...

    @abstractmethod
    def test_connection(self) -> bool:
        """Test if the connection is bound and usable."""
        ...

    @abstractmethod
    def search(
        self, base: str, search_filter: str, attributes: List[str]
    ) -> List[DirectoryEntry]:
        """Whole-subtree search returning every matching entry.

        No paging, no size limit, aliases are never dereferenced.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the connection."""
        ...

    @property
    @abstractmethod
    def reader_type(self) -> str:
        """Return the reader type identifier (e.g., 'ldap')."""
        ...

    def run_search(self, spec: SearchSpec) -> List[DirectoryEntry]:
        return self.search(spec.base, spec.search_filter, spec.attributes)

    def __enter__(self) -> "DirectoryReader":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
