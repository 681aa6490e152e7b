"""
runit: a small xUnit-style test framework.

This package discovers test classes, runs their annotated methods and
renders a tree-shaped report. It supports:

- Facts: parameterless tests run once
- Theories: parameterized tests run once per inline data row
- Load order: classes run in declared order, unordered classes last
- Coroutine tests: awaited one at a time, never concurrently
- Text and JSON reports, YAML configuration and a CLI

Quick Start:
    import asyncio
    from runit import TestRunner, fact, theory, inline_data

    class MathTests:
        @fact
        def adds(self):
            assert 1 + 1 == 2

        @theory
        @inline_data(8, 10)
        @inline_data(2, 0)
        def is_less(self, a, b):
            assert a < b, f"{a} is not less than {b}"

    runner = TestRunner()
    runner.add_class(MathTests)
    asyncio.run(runner.run({"colors": True}))

Discovery:
    runner = TestRunner("tests/unit")          # directory
    runner = TestRunner("myproject.tests")     # package name
"""

__version__ = "0.1.0"

# Registration exports
from .decorators import (
    Registrar,
    add_data_row,
    fact,
    inline_data,
    mark_fact,
    mark_theory,
    order,
    set_load_order,
    theory,
)
from .metadata import MetadataStore, Tag, default_store

# Runner exports
from .executor import run_case
from .loader import TestClassDescriptor, TestClassLoader
from .results import RunAggregate, TestCaseResult
from .runner import TestRunner

# Configuration exports
from .config import RunnerConfig, RunOptions, load_config

# Reporter exports
from .reporter import ReportGenerator, format_inputs, format_time, render

# Errors and assertions
from . import assertions
from .assertions import AssertionFailedError
from .errors import ConfigurationError, DiscoveryError, RunitError, TeardownError

__all__ = [
    # Version
    "__version__",
    # Registration
    "fact",
    "theory",
    "inline_data",
    "order",
    "mark_fact",
    "mark_theory",
    "add_data_row",
    "set_load_order",
    "Registrar",
    "MetadataStore",
    "Tag",
    "default_store",
    # Runner
    "TestRunner",
    "TestClassLoader",
    "TestClassDescriptor",
    "TestCaseResult",
    "RunAggregate",
    "run_case",
    # Config
    "RunOptions",
    "RunnerConfig",
    "load_config",
    # Reporter
    "render",
    "format_time",
    "format_inputs",
    "ReportGenerator",
    # Errors and assertions
    "assertions",
    "AssertionFailedError",
    "RunitError",
    "ConfigurationError",
    "DiscoveryError",
    "TeardownError",
]
