"""
Test runner - core execution engine.

The runner owns the loaded test classes, orders them, runs every Fact once
and every Theory once per data row, records each case in a RunAggregate and
hands the rendered report to the configured reporter.

Execution is strictly sequential: one class, one method, one data row at a
time. Coroutine tests are awaited before the next case starts. There is no
per-case timeout, so a test that never finishes blocks the run.

A class with a `teardown` hook gets a fresh instance for every run after
the first, so each run sees one setup and one teardown.

Example usage:
    import asyncio
    from runit import TestRunner

    runner = TestRunner("tests/unit")
    aggregate = asyncio.run(runner.run({"colors": True}))
    print(f"Failed: {aggregate.failed}")
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .config import DEFAULT_RUN_OPTIONS, RunOptions
from .discovery import DEFAULT_PATTERN, Root, TestSource
from .errors import ConfigurationError, TeardownError
from .executor import run_case
from .loader import LoadedClass, TestClassDescriptor, TestClassLoader
from .metadata import DataRow, MetadataStore, Tag, default_store
from .reporter import render
from .results import RunAggregate, TestCaseResult

logger = logging.getLogger(__name__)

TEARDOWN_HOOK = "teardown"


@dataclass
class ClassPlan:
    """The tests of one class, resolved before anything runs."""
    descriptor: TestClassDescriptor
    instance: object
    facts: List[str] = field(default_factory=list)
    theories: List[Tuple[str, List[DataRow]]] = field(default_factory=list)

    @property
    def case_count(self) -> int:
        return len(self.facts) + sum(len(rows) for _, rows in self.theories)


class TestRunner:
    """
    Discovers, runs and reports test classes.

    Example:
        runner = TestRunner()
        runner.add_class(MathTests)
        await runner.run()
    """

    __test__ = False

    def __init__(
        self,
        *roots: Root,
        store: Optional[MetadataStore] = None,
        source: Optional[TestSource] = None,
        pattern: str = DEFAULT_PATTERN,
        on_case_start: Optional[Callable[[type, str, Optional[DataRow]], None]] = None,
        on_case_complete: Optional[Callable[[type, str, TestCaseResult], None]] = None,
    ):
        """
        Initialize the runner.

        Args:
            roots: Containers to discover test classes under
            store: Metadata store to read tags from (default: process-wide store)
            source: Replacement for the default module discovery
            pattern: File name pattern for test modules
            on_case_start: Optional callback invoked before each case
            on_case_complete: Optional callback invoked after each case
        """
        self.store = store or default_store
        self.loader = TestClassLoader(self.store, source=source, pattern=pattern)
        self.on_case_start = on_case_start
        self.on_case_complete = on_case_complete
        self.aggregate = RunAggregate()
        self._torn_down: List[TestClassDescriptor] = []
        if roots:
            self.loader.discover(roots)

    def add_class(self, cls: type) -> LoadedClass:
        """Instantiate a test class and add it to this runner."""
        return self.loader.add_class(cls)

    def _ordered(self) -> List[LoadedClass]:
        return sorted(self.loader.entries, key=lambda entry: entry[0].sort_key())

    def _plan_class(self, descriptor: TestClassDescriptor, instance: object) -> ClassPlan:
        plan = ClassPlan(descriptor=descriptor, instance=instance)
        for name, tag in self.store.test_methods(descriptor.cls):
            if tag == Tag.FACT:
                plan.facts.append(name)
                continue

            rows = self.store.get_data(descriptor.cls, name)
            if not rows:
                raise ConfigurationError(
                    f'No data was provided to Theory test "{descriptor.name}.{name}"'
                )
            plan.theories.append((name, rows))
        return plan

    def build_plan(self) -> List[ClassPlan]:
        """
        Resolve every class to its tests in run order.

        Raises:
            ConfigurationError: If a Theory has no data rows
        """
        return [self._plan_class(descriptor, instance) for descriptor, instance in self._ordered()]

    async def _run_one(self, plan: ClassPlan, name: str, args: Optional[DataRow]) -> None:
        cls = plan.descriptor.cls
        if self.on_case_start:
            self.on_case_start(cls, name, args)

        result = await run_case(plan.instance, name, getattr(cls, name), args)
        self.aggregate.record(cls, name, result)

        if self.on_case_complete:
            self.on_case_complete(cls, name, result)

    async def _teardown(self, plan: ClassPlan) -> None:
        hook = getattr(plan.instance, TEARDOWN_HOOK, None)
        if not callable(hook):
            return
        self._torn_down.append(plan.descriptor)
        try:
            outcome = hook()
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            raise TeardownError(plan.descriptor.name, e) from e

    async def run_class(self, plan: ClassPlan) -> None:
        """Run all cases of one class, then its teardown hook."""
        logger.debug("Running %s (%d cases)", plan.descriptor.name, plan.case_count)
        for name in plan.facts:
            await self._run_one(plan, name, None)

        for name, rows in plan.theories:
            for row in rows:
                await self._run_one(plan, name, row)

        await self._teardown(plan)

    def _renew_torn_down(self) -> None:
        for descriptor in self._torn_down:
            self.loader.renew(descriptor)
        self._torn_down.clear()

    async def run(self, options: Optional[Union[RunOptions, Dict[str, Any]]] = None) -> RunAggregate:
        """
        Run every loaded test class and report the results.

        Args:
            options: RunOptions or a partial dict of them

        Returns:
            The RunAggregate for this run (also kept on self.aggregate)

        Raises:
            ConfigurationError: On invalid options or metadata; no report
                is produced in that case
            TeardownError: If a teardown hook raises
            DiscoveryError: If rebuilding a torn-down class fails
        """
        opts = DEFAULT_RUN_OPTIONS.merge(options)
        self.aggregate = RunAggregate()
        self._renew_torn_down()
        plans = self.build_plan()
        logger.info(
            "Running %d cases from %d classes",
            sum(p.case_count for p in plans),
            len(plans),
        )

        start = time.perf_counter()
        for plan in plans:
            await self.run_class(plan)
        self.aggregate.elapsed_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "Run finished: %d passed, %d failed",
            self.aggregate.passed,
            self.aggregate.failed,
        )
        opts.reporter(render(self.aggregate, self.aggregate.elapsed_ms, opts.colors))
        return self.aggregate

    def run_sync(self, options: Optional[Union[RunOptions, Dict[str, Any]]] = None) -> RunAggregate:
        """Run from synchronous code on a fresh event loop."""
        return asyncio.run(self.run(options))

    def plan(self) -> Dict[str, Any]:
        """
        Get the execution plan without running.

        Returns:
            Dictionary containing the classes in run order and a summary
        """
        plans = self.build_plan()
        classes = []
        for plan in plans:
            tests = [{"name": name, "kind": Tag.FACT.value, "cases": 1} for name in plan.facts]
            tests += [
                {"name": name, "kind": Tag.THEORY.value, "cases": len(rows)}
                for name, rows in plan.theories
            ]
            classes.append({
                "name": plan.descriptor.name,
                "module": plan.descriptor.cls.__module__,
                "order": plan.descriptor.load_order,
                "tests": tests,
            })

        return {
            "version": "1.0",
            "classes": classes,
            "summary": {
                "classes": len(plans),
                "tests": sum(len(c["tests"]) for c in classes),
                "cases": sum(p.case_count for p in plans),
                "by_kind": {
                    "fact": sum(len(p.facts) for p in plans),
                    "theory": sum(len(p.theories) for p in plans),
                },
            },
        }
