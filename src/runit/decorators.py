"""
Registration surface for test classes.

Decorators:
    @fact               Parameterless test method
    @theory             Parameterized test method
    @inline_data(...)   One data row for a theory (stackable)
    @order(n)           Class decorator setting the load order

Plain call forms (for classes built without decorators):
    mark_fact(cls, name)
    mark_theory(cls, name)
    add_data_row(cls, name, *row)
    set_load_order(cls, n)

Example:
    from runit import fact, theory, inline_data, order

    @order(1)
    class MathTests:
        @fact
        def adds(self):
            assert 1 + 1 == 2

        @theory
        @inline_data(8, 10)
        @inline_data(14, 15)
        def is_less(self, a, b):
            assert a < b

Stacked rows keep the order they are written in, top to bottom.

The decorators above register into the default store. Registrar(store)
offers the same decorators bound to another store.
"""

from typing import Callable, List, Optional, TypeVar

from .errors import ConfigurationError
from .metadata import DataRow, MetadataStore, Tag, check_registration, default_store

T = TypeVar("T")


class _TestMarker:
    """
    Holds the metadata collected by method decorators until the owning
    class is created, then registers it and puts the plain function back.
    """

    def __init__(self, func: Callable, store: MetadataStore):
        self.func = func
        self.store = store
        self.tag: Optional[Tag] = None
        self.rows: List[DataRow] = []

    def set_tag(self, tag: Tag) -> None:
        check_registration(self.tag, tag, bool(self.rows))
        self.tag = tag

    def prepend_row(self, row: DataRow) -> None:
        check_registration(self.tag, None, True)
        self.rows.insert(0, row)

    def __set_name__(self, owner: type, name: str) -> None:
        if self.tag is not None:
            self.store.set_tag(owner, name, self.tag)
        for row in self.rows:
            self.store.add_data(owner, name, row)
        setattr(owner, name, self.func)

    def __call__(self, *args, **kwargs):
        return self.func(*args, **kwargs)


class Registrar:
    """
    Decorators bound to one metadata store.

    The module-level fact, theory, inline_data and order are bound to the
    default store. Build a Registrar to register into a store of your own,
    then hand the same store to TestRunner(store=...).

    Example:
        store = MetadataStore()
        tests = Registrar(store)

        class ScopedTests:
            @tests.fact
            def works(self):
                pass
    """

    def __init__(self, store: MetadataStore):
        self.store = store

    def _marker(self, obj) -> _TestMarker:
        if not isinstance(obj, _TestMarker):
            return _TestMarker(obj, self.store)
        if obj.store is not self.store:
            raise ConfigurationError("Decorators bound to different metadata stores cannot be combined")
        return obj

    def fact(self, func: Callable) -> _TestMarker:
        """Mark a method as a Fact."""
        marker = self._marker(func)
        marker.set_tag(Tag.FACT)
        return marker

    def theory(self, func: Callable) -> _TestMarker:
        """Mark a method as a Theory. Attach rows with @inline_data."""
        marker = self._marker(func)
        marker.set_tag(Tag.THEORY)
        return marker

    def inline_data(self, *args) -> Callable[[Callable], _TestMarker]:
        """Attach one data row to a Theory."""
        def decorator(func: Callable) -> _TestMarker:
            marker = self._marker(func)
            marker.prepend_row(tuple(args))
            return marker
        return decorator

    def order(self, n: int) -> Callable[[T], T]:
        """Class decorator: run this class at position n (lower runs first)."""
        def decorator(cls: T) -> T:
            set_load_order(cls, n, store=self.store)  # type: ignore[arg-type]
            return cls
        return decorator


_default = Registrar(default_store)

fact = _default.fact
theory = _default.theory
inline_data = _default.inline_data
order = _default.order


def mark_fact(cls: type, name: str, store: Optional[MetadataStore] = None) -> None:
    (store or default_store).set_tag(cls, name, Tag.FACT)


def mark_theory(cls: type, name: str, store: Optional[MetadataStore] = None) -> None:
    (store or default_store).set_tag(cls, name, Tag.THEORY)


def add_data_row(cls: type, name: str, *row, store: Optional[MetadataStore] = None) -> None:
    (store or default_store).add_data(cls, name, tuple(row))


def set_load_order(cls: type, n: int, store: Optional[MetadataStore] = None) -> None:
    (store or default_store).set_order(cls, n)
