"""
Test class loader.

Turns containers into instantiated test classes. Each class is constructed
once when it is added, so setup logic in a constructor runs once per class
and not once per test case. A class whose teardown hook ran is renewed
before the next run. The loader never calls test methods.
"""

import inspect
import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Iterable, List, Optional, Tuple

from .discovery import DEFAULT_PATTERN, Root, TestSource, iter_test_modules
from .errors import DiscoveryError
from .metadata import MetadataStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TestClassDescriptor:
    """
    Identifies one loaded test class.

    Attributes:
        cls: The test class itself
        load_order: Declared load order (None sorts last)
        index: Discovery position, used to break load order ties
    """
    __test__ = False

    cls: type
    load_order: Optional[int]
    index: int

    @property
    def name(self) -> str:
        return self.cls.__name__

    def sort_key(self) -> Tuple[int, float, int]:
        if self.load_order is None:
            return (1, 0, self.index)
        return (0, self.load_order, self.index)


LoadedClass = Tuple[TestClassDescriptor, object]


def resolve_test_classes(module: ModuleType, store: MetadataStore) -> List[type]:
    """
    Return the test classes a module defines, in definition order.

    Raises:
        DiscoveryError: If the module defines no test class
    """
    classes = [
        obj for obj in vars(module).values()
        if inspect.isclass(obj)
        and obj.__module__ == module.__name__
        and store.knows(obj)
    ]
    if not classes:
        raise DiscoveryError("Module does not define a test class", module.__name__)
    return classes


class TestClassLoader:
    """
    Collects (descriptor, instance) pairs from containers or single classes.

    Example:
        loader = TestClassLoader(store)
        loader.discover(["tests/unit"])
        loader.add_class(ExtraTests)
    """

    __test__ = False

    def __init__(
        self,
        store: MetadataStore,
        source: Optional[TestSource] = None,
        pattern: str = DEFAULT_PATTERN,
    ):
        self.store = store
        self.source = source or iter_test_modules
        self.pattern = pattern
        self._entries: List[LoadedClass] = []

    @property
    def entries(self) -> List[LoadedClass]:
        return list(self._entries)

    @staticmethod
    def _construct(cls: type) -> object:
        try:
            return cls()
        except Exception as e:
            raise DiscoveryError("Failed to construct test class", cls.__name__) from e

    def renew(self, descriptor: TestClassDescriptor) -> LoadedClass:
        """
        Replace the instance of a loaded class with a freshly constructed one.

        Used after a teardown hook has released the old instance's state.

        Raises:
            DiscoveryError: If the constructor fails
        """
        entry = (descriptor, self._construct(descriptor.cls))
        self._entries[descriptor.index] = entry
        logger.debug("Rebuilt test class %s", descriptor.name)
        return entry

    def add_class(self, cls: type) -> LoadedClass:
        """
        Instantiate a class and add it to the loaded list.

        Raises:
            DiscoveryError: If cls is not a class or its constructor fails
        """
        if not inspect.isclass(cls):
            raise DiscoveryError("Not a test class", repr(cls))

        instance = self._construct(cls)
        descriptor = TestClassDescriptor(
            cls=cls,
            load_order=self.store.get_order(cls),
            index=len(self._entries),
        )
        entry = (descriptor, instance)
        self._entries.append(entry)
        logger.debug("Loaded test class %s (order=%s)", descriptor.name, descriptor.load_order)
        return entry

    def discover(self, roots: Iterable[Root]) -> List[LoadedClass]:
        """
        Load every test class found under the given roots.

        Returns:
            The pairs added by this call
        """
        added: List[LoadedClass] = []
        for root in roots:
            for module in self.source(root, self.pattern):
                for cls in resolve_test_classes(module, self.store):
                    added.append(self.add_class(cls))
        logger.debug("Discovered %d test classes", len(added))
        return added
