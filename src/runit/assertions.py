"""
Assertion helpers for runit tests.

Every helper raises AssertionFailedError with a readable message. Plain
`assert` statements work too; the runner records any raised exception.

Example:
    from runit import assertions as Assert

    Assert.equal(4, add(2, 2))
    Assert.throws(lambda: divide(1, 0), ZeroDivisionError)
"""

from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, Sized, Tuple, Type, Union

ExceptionSpec = Union[Type[BaseException], Tuple[Type[BaseException], ...]]

_MISSING = object()


class AssertionFailedError(AssertionError):
    """Raised when an assertion helper fails."""

    def __init__(self, message: str, actual: Any = _MISSING):
        if actual is not _MISSING:
            message = f"Expected: {message!r}\nActual: {actual!r}"
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"Test failed!\n{self.message}"

    @classmethod
    def multiple_failures(
        cls,
        method_name: str,
        total_items: int,
        errors: List[Tuple[int, str, str]],
    ) -> "AssertionFailedError":
        """Build one failure listing every failing item of a collection."""
        lines = [
            f"Assert.{method_name}() failure: {len(errors)} of {total_items} "
            "items in the collection did not pass"
        ]
        for index, element, err in errors:
            pad = " " * len(str(index))
            lines.append(f"{index}     {element}")
            lines.extend(f"{pad}     {line}" for line in err.split("\n"))
        return cls("\n".join(lines))


def equal(expected: Any, actual: Any) -> None:
    if expected == actual:
        return
    raise AssertionFailedError(expected, actual)


def not_equal(expected: Any, actual: Any) -> None:
    if expected != actual:
        return
    raise AssertionFailedError(f"Expected values to be unequal, both were {actual!r}")


def true(value: Any) -> None:
    if value is True:
        return
    raise AssertionFailedError(True, value)


def false(value: Any) -> None:
    if value is False:
        return
    raise AssertionFailedError(False, value)


def is_none(value: Any) -> None:
    if value is None:
        return
    raise AssertionFailedError(None, value)


def is_not_none(value: Any) -> None:
    if value is not None:
        return
    raise AssertionFailedError("Expected value to not be None")


def throws(method: Callable[[], Any], exception: Optional[ExceptionSpec] = None) -> BaseException:
    """
    Assert that calling method raises.

    Args:
        method: Zero-argument callable
        exception: Optional exception type (or tuple) the error must match

    Returns:
        The raised exception
    """
    try:
        method()
    except Exception as e:
        if exception is None or isinstance(e, exception):
            return e
        raise AssertionFailedError(
            f"Expected method to throw {_names(exception)}, threw {type(e).__name__}: {e}"
        ) from e
    raise AssertionFailedError(
        "Expected method to throw" + (f" {_names(exception)}" if exception else "")
    )


def does_not_throw(method: Callable[[], Any]) -> Any:
    try:
        return method()
    except Exception as e:
        raise AssertionFailedError(f"Expected method not to throw, threw:\n{type(e).__name__}: {e}") from e


async def throws_async(
    method: Callable[[], Awaitable[Any]],
    exception: Optional[ExceptionSpec] = None,
) -> BaseException:
    """Async form of throws(): awaits the coroutine returned by method."""
    try:
        await method()
    except Exception as e:
        if exception is None or isinstance(e, exception):
            return e
        raise AssertionFailedError(
            f"Expected async method to throw {_names(exception)}, threw {type(e).__name__}: {e}"
        ) from e
    raise AssertionFailedError(
        "Expected async method to throw" + (f" {_names(exception)}" if exception else "")
    )


async def does_not_throw_async(method: Callable[[], Awaitable[Any]]) -> Any:
    try:
        return await method()
    except Exception as e:
        raise AssertionFailedError(
            f"Expected async method not to throw, threw:\n{type(e).__name__}: {e}"
        ) from e


def contains(collection: Iterable[Any], expected: Any) -> None:
    """
    Assert that a collection holds an element.

    `expected` may be a value or a predicate; a predicate passes when any
    element satisfies it.
    """
    items = list(collection)
    if callable(expected):
        if any(expected(item) for item in items):
            return
        raise AssertionFailedError("Expected collection to contain elements matching the predicate")
    if expected in items:
        return
    raise AssertionFailedError(f"Expected collection to contain element {expected!r}")


def does_not_contain(collection: Iterable[Any], element: Any) -> None:
    if element not in list(collection):
        return
    raise AssertionFailedError(f"Expected collection to not contain element {element!r}")


def empty(collection: Sized) -> None:
    if len(collection) == 0:
        return
    raise AssertionFailedError(f"Expected collection to be empty, it has {len(collection)} items")


def starts_with(text: str, prefix: str) -> None:
    if text.startswith(prefix):
        return
    raise AssertionFailedError(f'Expected string "{text}" to start with substring "{prefix}"')


def ends_with(text: str, suffix: str) -> None:
    if text.endswith(suffix):
        return
    raise AssertionFailedError(f'Expected string "{text}" to end with substring "{suffix}"')


def in_range(number: float, minimum: Union[float, range], maximum: Optional[float] = None) -> None:
    """Assert minimum <= number <= maximum. A range object may be passed instead."""
    if isinstance(minimum, range):
        if number in minimum:
            return
        raise AssertionFailedError(f"Expected: {minimum}\nActual: {number}")
    if maximum is None:
        raise TypeError("in_range() needs a maximum when minimum is not a range")
    if minimum <= number <= maximum:
        return
    raise AssertionFailedError(f"Expected: {minimum}-{maximum}\nActual: {number}")


def is_type(value: Any, expected_type: Union[type, Tuple[type, ...]]) -> None:
    if isinstance(value, expected_type):
        return
    raise AssertionFailedError(
        f"Expected type: {_names(expected_type)}\nActual type: {type(value).__name__}"
    )


def has_property(obj: Any, name: str) -> None:
    if hasattr(obj, name):
        return
    raise AssertionFailedError(f'Expected object to have property "{name}"')


def property_equal(obj: Any, name: str, expected: Any) -> None:
    value = getattr(obj, name, _MISSING)
    if value is not _MISSING and value == expected:
        return
    shown = "<missing>" if value is _MISSING else repr(value)
    raise AssertionFailedError(
        f'Expected object property "{name}" to be {expected!r}, got {shown}'
    )


def _collect_errors(items: Sequence[Any], predicate: Callable[[Any, int], Any]) -> List[Tuple[int, str, str]]:
    errors = []
    for index, element in enumerate(items):
        try:
            predicate(element, index)
        except Exception as e:
            errors.append((index, repr(element), str(e)))
    return errors


def all_pass(collection: Iterable[Any], predicate: Callable[[Any, int], Any]) -> None:
    """Assert that predicate(element, index) does not raise for any element."""
    items = list(collection)
    errors = _collect_errors(items, predicate)
    if errors:
        raise AssertionFailedError.multiple_failures("all_pass", len(items), errors)


def any_pass(collection: Iterable[Any], predicate: Callable[[Any, int], Any]) -> None:
    """Assert that predicate(element, index) does not raise for at least one element."""
    items = list(collection)
    errors = _collect_errors(items, predicate)
    if len(errors) == len(items):
        raise AssertionFailedError.multiple_failures("any_pass", len(items), errors)


def _names(spec: Union[type, Tuple[type, ...]]) -> str:
    if isinstance(spec, tuple):
        return " or ".join(t.__name__ for t in spec)
    return spec.__name__
