"""
Metadata store for test classes.

The store is a side table keyed by class identity (never by class name)
that records which methods are tests, what kind of test each one is, the
data rows attached to parameterized tests and the load order of each class.

Validation happens when metadata is registered, so a bad combination fails
at class-definition time instead of halfway through a run.

Example usage:
    from runit.metadata import MetadataStore, Tag

    store = MetadataStore()
    store.set_tag(MathTests, "adds", Tag.THEORY)
    store.add_data(MathTests, "adds", (1, 2, 3))
    store.set_order(MathTests, 1)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import ConfigurationError

NOT_BOTH = "A method cannot be marked as both a Fact and a Theory"
UNEXPECTED_DATA = "Data providers can only be used on Theories"

DataRow = Tuple[object, ...]


class Tag(Enum):
    """
    Kind of a test method.

    - FACT: Parameterless test, run once
    - THEORY: Parameterized test, run once per data row
    """
    FACT = "fact"
    THEORY = "theory"


@dataclass
class MethodMetadata:
    """Tag and data rows registered for one method."""
    tag: Optional[Tag] = None
    rows: List[DataRow] = field(default_factory=list)


def check_registration(tag: Optional[Tag], new_tag: Optional[Tag], has_rows: bool) -> None:
    """
    Validate a tag/data combination.

    Args:
        tag: Tag already registered for the method (if any)
        new_tag: Tag being registered (None when only data is added)
        has_rows: True if the method has or is receiving data rows

    Raises:
        ConfigurationError: If the combination is invalid
    """
    if tag is not None and new_tag is not None and tag != new_tag:
        raise ConfigurationError(NOT_BOTH)
    if has_rows and Tag.FACT in (tag, new_tag):
        raise ConfigurationError(UNEXPECTED_DATA)


class MetadataStore:
    """
    Side table mapping (class, method) to test metadata.

    Lookups walk the class MRO, so a subclass sees the tests its bases
    registered. Tags and data rows resolve independently: the nearest
    class with a tag decides the kind, the nearest class with rows decides
    the rows. Registration always writes to the exact class given.
    """

    def __init__(self):
        self._methods: Dict[type, Dict[str, MethodMetadata]] = {}
        self._orders: Dict[type, int] = {}

    def _entry(self, cls: type, method: str) -> MethodMetadata:
        return self._methods.setdefault(cls, {}).setdefault(method, MethodMetadata())

    def _lookup(self, cls: type, method: str) -> Iterator[MethodMetadata]:
        for klass in getattr(cls, "__mro__", (cls,)):
            entry = self._methods.get(klass, {}).get(method)
            if entry is not None:
                yield entry

    def set_tag(self, cls: type, method: str, tag: Tag) -> None:
        """Tag a method as a Fact or a Theory."""
        entry = self._entry(cls, method)
        check_registration(entry.tag, tag, bool(entry.rows))
        entry.tag = tag

    def has_tag(self, cls: type, method: str, tag: Tag) -> bool:
        return self.get_tag(cls, method) == tag

    def get_tag(self, cls: type, method: str) -> Optional[Tag]:
        """Return the nearest tag along the MRO, or None."""
        for entry in self._lookup(cls, method):
            if entry.tag is not None:
                return entry.tag
        return None

    def set_data(self, cls: type, method: str, rows: Iterable[DataRow]) -> None:
        """Replace the data rows of a method."""
        rows = [tuple(row) for row in rows]
        check_registration(self.get_tag(cls, method), None, bool(rows))
        self._entry(cls, method).rows = rows

    def add_data(self, cls: type, method: str, row: DataRow) -> None:
        """Append one data row to a method."""
        check_registration(self.get_tag(cls, method), None, True)
        self._entry(cls, method).rows.append(tuple(row))

    def get_data(self, cls: type, method: str) -> Optional[List[DataRow]]:
        """
        Return the data rows of a method in declaration order, or None.

        Rows registered on a subclass replace the rows of its bases.
        """
        for entry in self._lookup(cls, method):
            if entry.rows:
                return list(entry.rows)
        return None

    def set_order(self, cls: type, order: int) -> None:
        if isinstance(order, bool) or not isinstance(order, int):
            raise ConfigurationError(f"Load order must be an int, got {type(order).__name__}")
        self._orders[cls] = order

    def get_order(self, cls: type) -> Optional[int]:
        return self._orders.get(cls)

    def knows(self, cls: type) -> bool:
        """Return True if any metadata was registered for the class or its bases."""
        return any(
            klass in self._methods or klass in self._orders
            for klass in getattr(cls, "__mro__", (cls,))
        )

    def test_methods(self, cls: type) -> List[Tuple[str, Tag]]:
        """
        List the tagged methods of a class.

        Names come from the class MRO, base classes first, each class in
        declaration order. Untagged methods are skipped.

        Returns:
            List of (method name, tag) pairs
        """
        names: List[str] = []
        for klass in reversed(getattr(cls, "__mro__", (cls,))):
            for name, value in vars(klass).items():
                if callable(value) and name not in names:
                    names.append(name)

        methods = []
        for name in names:
            tag = self.get_tag(cls, name)
            if tag is not None:
                methods.append((name, tag))
        return methods

    def clear(self) -> None:
        """Forget all registered metadata."""
        self._methods.clear()
        self._orders.clear()


default_store = MetadataStore()
