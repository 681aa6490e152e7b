"""
Test case executor.

Runs one case of one test method: invokes it bound to its class instance,
awaits it when it is a coroutine, measures elapsed time and turns any
raised exception into a failing result. A failing case never aborts the run;
SystemExit and cancellation raised by a test body are failures too. Only
KeyboardInterrupt stops the run.
"""

import inspect
import logging
import time
from typing import Any, Callable, Optional, Sequence

from .results import TestCaseResult

logger = logging.getLogger(__name__)


def describe_exception(exc: BaseException) -> str:
    """Render a raised exception as failure text."""
    text = str(exc)
    if isinstance(exc, AssertionError) and text:
        return text
    if not text:
        return type(exc).__name__
    return f"{type(exc).__name__}: {text}"


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


async def run_case(
    instance: object,
    name: str,
    method: Callable,
    args: Optional[Sequence[Any]] = None,
) -> TestCaseResult:
    """
    Execute a single test case.

    Args:
        instance: Test class instance the method is bound to
        name: Method name, used for logging
        method: Unbound method taken from the class
        args: Data row for a Theory, None for a Fact

    Returns:
        TestCaseResult with timing and the failure text if it raised
    """
    inputs = tuple(args) if args is not None else None
    start = time.perf_counter()
    try:
        outcome = method(instance, *(inputs or ()))
        if inspect.isawaitable(outcome):
            await outcome
    except KeyboardInterrupt:
        raise
    except BaseException as e:
        message = describe_exception(e)
        logger.debug("Case %s failed: %s", name, message)
        return TestCaseResult(
            elapsed_ms=_elapsed_ms(start),
            error_message=message,
            error_type=type(e).__name__,
            inputs=inputs,
        )

    return TestCaseResult(elapsed_ms=_elapsed_ms(start), inputs=inputs)
