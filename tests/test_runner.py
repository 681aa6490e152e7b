"""Tests for the test runner."""

import asyncio
import re
import sys
import types

import pytest

from runit import (
    ConfigurationError,
    DiscoveryError,
    MetadataStore,
    Registrar,
    RunOptions,
    TeardownError,
    TestRunner,
    add_data_row,
    default_store,
    fact,
    inline_data,
    mark_fact,
    mark_theory,
    order,
    theory,
)

TIMING = re.compile(r"\d+(µs|ms|s)\b")


def _strip_timings(text: str) -> str:
    return TIMING.sub("<t>", text)


def _run(runner: TestRunner, reports, **options):
    return asyncio.run(runner.run({"reporter": reports.append, **options}))


@pytest.fixture
def math_tests():
    """A fresh test class; the default store is cleared between tests."""

    class MathTests:
        constructed = 0

        def __init__(self):
            MathTests.constructed += 1
            self.log = []

        @fact
        def adds(self):
            self.log.append("adds")
            assert 1 + 1 == 2

        @fact
        def divides(self):
            self.log.append("divides")
            return 1 / 0

        @theory
        @inline_data(8, 10)
        @inline_data(14, 15)
        @inline_data(18, 20)
        @inline_data(3, 5)
        @inline_data(2, 0)
        def is_less(self, a, b):
            self.log.append((a, b))
            assert a < b, f"{a} is not less than {b}"

        def helper(self):
            self.log.append("helper")

    return MathTests


class TestRun:
    """Tests for TestRunner.run."""

    def test_counts_every_case(self, math_tests, reports):
        """Test that N facts plus all theory rows are executed."""
        runner = TestRunner()
        runner.add_class(math_tests)
        aggregate = _run(runner, reports)

        assert aggregate.total == 2 + 5
        assert aggregate.passed == 5
        assert aggregate.failed == 2
        assert aggregate.passed + aggregate.failed == len(list(aggregate.cases()))

    def test_theory_rows_in_declaration_order(self, math_tests, reports):
        """Test that each row becomes one result carrying its arguments."""
        runner = TestRunner()
        _, instance = runner.add_class(math_tests)
        aggregate = _run(runner, reports)

        cases = aggregate.results[math_tests]["is_less"]
        assert [c.inputs for c in cases] == [(8, 10), (14, 15), (18, 20), (3, 5), (2, 0)]
        assert [c.passed for c in cases] == [True, True, True, True, False]
        assert instance.log == ["adds", "divides", (8, 10), (14, 15), (18, 20), (3, 5), (2, 0)]

    def test_failure_does_not_stop_run(self, math_tests, reports):
        """Test that a failing fact does not prevent later cases."""
        runner = TestRunner()
        runner.add_class(math_tests)
        aggregate = _run(runner, reports)

        divides = aggregate.results[math_tests]["divides"][0]
        assert divides.error_message == "ZeroDivisionError: division by zero"
        assert len(aggregate.results[math_tests]["is_less"]) == 5

    def test_untagged_methods_ignored(self, math_tests, reports):
        """Test that methods without a tag are not run."""
        runner = TestRunner()
        _, instance = runner.add_class(math_tests)
        aggregate = _run(runner, reports)

        assert "helper" not in aggregate.results[math_tests]
        assert "helper" not in instance.log

    def test_reporter_receives_report(self, math_tests, reports):
        """Test that the rendered report is handed to the reporter once."""
        runner = TestRunner()
        runner.add_class(math_tests)
        _run(runner, reports)

        assert len(reports) == 1
        assert reports[0].startswith("[×] MathTests")
        assert "Ran 7 tests in" in reports[0]

    def test_default_reporter_prints(self, capsys):
        """Test that the default reporter writes to stdout."""
        class Quick:
            @fact
            def works(self):
                pass

        runner = TestRunner()
        runner.add_class(Quick)
        asyncio.run(runner.run())

        out = capsys.readouterr().out
        assert "[+] Quick" in out
        assert "Passed: 1" in out

    def test_colors_option(self, math_tests, reports):
        """Test that the colors option reaches the renderer."""
        runner = TestRunner()
        runner.add_class(math_tests)
        _run(runner, reports, colors=True)
        assert "\033[31m" in reports[0]

    def test_run_options_object(self, math_tests, reports):
        """Test that a RunOptions instance is accepted."""
        runner = TestRunner()
        runner.add_class(math_tests)
        asyncio.run(runner.run(RunOptions(reporter=reports.append)))
        assert len(reports) == 1

    def test_unknown_option(self):
        """Test that unknown option names are a configuration error."""
        runner = TestRunner()
        with pytest.raises(ConfigurationError, match="Unknown run option"):
            asyncio.run(runner.run({"colour": True}))

    def test_run_sync(self, math_tests, reports):
        """Test the synchronous wrapper."""
        runner = TestRunner()
        runner.add_class(math_tests)
        aggregate = runner.run_sync({"reporter": reports.append})
        assert aggregate.total == 7


class TestIdempotence:
    """Tests for repeated runs."""

    def test_two_runs_same_report(self, math_tests, reports):
        """Test that running twice resets counters and gives the same report."""
        runner = TestRunner()
        runner.add_class(math_tests)

        first = _run(runner, reports)
        first_counts = (first.passed, first.failed)
        second = _run(runner, reports)

        assert (second.passed, second.failed) == first_counts == (5, 2)
        assert first is not second
        assert _strip_timings(reports[0]) == _strip_timings(reports[1])

    def test_constructor_runs_once(self, math_tests, reports):
        """Test that the class is constructed once, not per case or per run."""
        before = math_tests.constructed
        runner = TestRunner()
        runner.add_class(math_tests)
        _run(runner, reports)
        _run(runner, reports)

        assert math_tests.constructed == before + 1


class TestOrdering:
    """Tests for class load order."""

    def test_classes_sorted_by_order(self, reports):
        """Test ascending order, unordered last, ties by discovery order."""
        class Unordered1:
            @fact
            def t(self):
                pass

        @order(2)
        class Second:
            @fact
            def t(self):
                pass

        @order(1)
        class First:
            @fact
            def t(self):
                pass

        @order(2)
        class SecondTie:
            @fact
            def t(self):
                pass

        class Unordered2:
            @fact
            def t(self):
                pass

        runner = TestRunner()
        for cls in (Unordered1, Second, First, SecondTie, Unordered2):
            runner.add_class(cls)
        aggregate = _run(runner, reports)

        assert [cls.__name__ for cls in aggregate.results] == [
            "First", "Second", "SecondTie", "Unordered1", "Unordered2",
        ]

    def test_facts_before_theories(self, reports):
        """Test that facts run before theories within a class."""
        class Mixed:
            def __init__(self):
                self.log = []

            @theory
            @inline_data(1)
            def param(self, x):
                self.log.append("param")

            @fact
            def plain(self):
                self.log.append("plain")

        runner = TestRunner()
        _, instance = runner.add_class(Mixed)
        _run(runner, reports)
        assert instance.log == ["plain", "param"]


class TestConfigurationErrors:
    """Tests for fatal configuration errors."""

    def test_theory_without_data(self, reports):
        """Test that a theory with no rows aborts before anything runs."""
        class Early:
            ran = False

            @fact
            def t(self):
                Early.ran = True

        class Broken:
            @theory
            def missing(self, x):
                pass

        runner = TestRunner()
        runner.add_class(Early)
        runner.add_class(Broken)

        with pytest.raises(ConfigurationError, match='Broken.missing'):
            _run(runner, reports)
        assert reports == []
        assert Early.ran is False


class TestAsyncAndLifecycle:
    """Tests for coroutine tests and teardown hooks."""

    def test_async_cases_sequential(self, reports):
        """Test that coroutine cases never overlap."""
        events = []

        class Slow:
            @theory
            @inline_data("a")
            @inline_data("b")
            async def step(self, name):
                events.append(f"start {name}")
                await asyncio.sleep(0.01)
                events.append(f"end {name}")

        runner = TestRunner()
        runner.add_class(Slow)
        aggregate = _run(runner, reports)

        assert events == ["start a", "end a", "start b", "end b"]
        assert aggregate.passed == 2

    def test_teardown_once_per_run(self, reports):
        """Test that each run gets one setup, its cases and one teardown."""
        log = []

        class WithTeardown:
            def __init__(self):
                log.append("setup")

            @fact
            def t(self):
                log.append("test")

            def teardown(self):
                log.append("teardown")

        runner = TestRunner()
        runner.add_class(WithTeardown)
        _run(runner, reports)
        _run(runner, reports)
        assert log == ["setup", "test", "teardown", "setup", "test", "teardown"]

    def test_second_run_after_teardown_released_state(self, reports):
        """Test that a rerun never sees state released by the last teardown."""
        class Connection:
            def __init__(self):
                self.conn = ["open"]

            @fact
            def uses_connection(self):
                assert self.conn, "connection was closed"

            def teardown(self):
                self.conn.clear()

        runner = TestRunner()
        runner.add_class(Connection)
        first = _run(runner, reports)
        second = _run(runner, reports)

        assert (first.failed, second.failed) == (0, 0)
        assert _strip_timings(reports[0]) == _strip_timings(reports[1])

    def test_failed_rebuild_is_fatal(self, reports):
        """Test that a constructor failing on rerun aborts that run."""
        class OneShot:
            built = 0

            def __init__(self):
                OneShot.built += 1
                if OneShot.built > 1:
                    raise RuntimeError("resource already taken")

            @fact
            def t(self):
                pass

            def teardown(self):
                pass

        runner = TestRunner()
        runner.add_class(OneShot)
        _run(runner, reports)
        with pytest.raises(DiscoveryError, match="OneShot"):
            _run(runner, reports)
        assert len(reports) == 1

    def test_system_exit_in_test_does_not_stop_run(self, reports):
        """Test that sys.exit() in one fact is recorded and later facts still run."""
        class Exits:
            @fact
            def exits(self):
                sys.exit(3)

            @fact
            def after(self):
                pass

        runner = TestRunner()
        runner.add_class(Exits)
        aggregate = _run(runner, reports)

        assert (aggregate.passed, aggregate.failed) == (1, 1)
        assert aggregate.results[Exits]["exits"][0].error_message == "SystemExit: 3"
        assert len(reports) == 1

    def test_async_teardown(self, reports):
        """Test that coroutine teardown hooks are awaited."""
        class AsyncTeardown:
            closed = False

            @fact
            def t(self):
                pass

            async def teardown(self):
                await asyncio.sleep(0)
                AsyncTeardown.closed = True

        runner = TestRunner()
        runner.add_class(AsyncTeardown)
        _run(runner, reports)
        assert AsyncTeardown.closed is True

    def test_teardown_failure_is_fatal(self, reports):
        """Test that a failing teardown raises TeardownError."""
        class BadTeardown:
            @fact
            def t(self):
                pass

            def teardown(self):
                raise OSError("cannot close")

        runner = TestRunner()
        runner.add_class(BadTeardown)
        with pytest.raises(TeardownError, match="BadTeardown"):
            _run(runner, reports)
        assert reports == []


class TestCallbacksAndStores:
    """Tests for callbacks, explicit stores and inheritance."""

    def test_callbacks_invoked(self, math_tests, reports):
        """Test that case callbacks fire around each case."""
        started = []
        completed = []

        runner = TestRunner(
            on_case_start=lambda cls, name, args: started.append((name, args)),
            on_case_complete=lambda cls, name, result: completed.append((name, result.passed)),
        )
        runner.add_class(math_tests)
        _run(runner, reports)

        assert started[0] == ("adds", None)
        assert started[-1] == ("is_less", (2, 0))
        assert completed[-1] == ("is_less", False)
        assert len(completed) == 7

    def test_explicit_store(self, store, reports):
        """Test that a runner reads only from the store it was given."""
        class Plain:
            def check(self):
                pass

            def pair(self, a, b):
                assert a == b

        mark_fact(Plain, "check", store=store)
        mark_theory(Plain, "pair", store=store)
        add_data_row(Plain, "pair", 1, 1, store=store)
        add_data_row(Plain, "pair", 1, 2, store=store)

        runner = TestRunner(store=store)
        runner.add_class(Plain)
        aggregate = _run(runner, reports)
        assert (aggregate.passed, aggregate.failed) == (2, 1)

    def test_inherited_tests_run(self, reports):
        """Test that tests declared on a base class run for the subclass."""
        class Base:
            @fact
            def inherited(self):
                pass

        class Child(Base):
            @fact
            def own(self):
                pass

        runner = TestRunner()
        runner.add_class(Child)
        aggregate = _run(runner, reports)
        assert list(aggregate.results[Child]) == ["inherited", "own"]

    def test_subclass_rows_keep_inherited_theory(self, reports):
        """Test that rows added on a subclass do not hide the base's Theory tag."""
        class Base:
            @theory
            @inline_data(1, 2)
            def lt(self, a, b):
                assert a < b

        class Sub(Base):
            pass

        add_data_row(Sub, "lt", 3, 4)

        runner = TestRunner()
        runner.add_class(Base)
        runner.add_class(Sub)
        aggregate = _run(runner, reports)

        assert [c.inputs for c in aggregate.results[Base]["lt"]] == [(1, 2)]
        assert [c.inputs for c in aggregate.results[Sub]["lt"]] == [(3, 4)]
        assert aggregate.passed == 2

    def test_registrar_with_discovery(self, reports):
        """Test that decorators bound to a custom store work with discovery."""
        store = MetadataStore()
        tests = Registrar(store)
        module = types.ModuleType("custom_store_tests")

        @tests.order(1)
        class Scoped:
            @tests.fact
            def works(self):
                pass

            @tests.theory
            @tests.inline_data(2)
            def doubles(self, x):
                assert x * 2 == 4

        Scoped.__module__ = module.__name__
        module.Scoped = Scoped

        runner = TestRunner("scoped", store=store, source=lambda root, pattern: iter([module]))
        aggregate = _run(runner, reports)

        assert aggregate.passed == 2
        assert store.get_order(Scoped) == 1
        assert not default_store.knows(Scoped)

    def test_discovery_from_roots(self, tmp_path, write_module, reports):
        """Test constructing a runner from a directory root."""
        write_module("suite/test_sample.py", """
            from runit import fact

            class SampleTests:
                @fact
                def works(self):
                    pass
        """)
        runner = TestRunner(tmp_path / "suite")
        aggregate = _run(runner, reports)
        assert aggregate.passed == 1
        assert [cls.__name__ for cls in aggregate.results] == ["SampleTests"]


class TestPlan:
    """Tests for TestRunner.plan."""

    def test_plan_lists_tests(self, math_tests):
        """Test that plan() describes classes without running them."""
        runner = TestRunner()
        _, instance = runner.add_class(math_tests)
        plan = runner.plan()

        assert plan["version"] == "1.0"
        assert plan["classes"][0]["name"] == "MathTests"
        assert plan["classes"][0]["tests"] == [
            {"name": "adds", "kind": "fact", "cases": 1},
            {"name": "divides", "kind": "fact", "cases": 1},
            {"name": "is_less", "kind": "theory", "cases": 5},
        ]
        assert plan["summary"]["cases"] == 7
        assert plan["summary"]["by_kind"] == {"fact": 2, "theory": 1}
        assert instance.log == []
