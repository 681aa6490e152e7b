"""
Report generation for runit.

Two outputs are supported:
- Text: the tree report handed to the reporter callback after every run
- JSON: a machine-parseable report for CI integration

Example text report:
    [×] MathTests (3ms)
      ├── [+] adds (12µs)
      └── [×] is_less (3ms)
          ├── [+] 8, 10 (1ms)
          └── [×] 2, 0 (2ms)

    Failures:
    1. MathTests.is_less
       Inputs: 2, 0
       Expected: True
       Actual: False

    Ran 3 tests in 3ms
    Passed: 2
    Failed: 1

Example usage:
    from runit.reporter import ReportGenerator, render

    text = render(aggregate, aggregate.elapsed_ms, colorize=True)
    ReportGenerator(aggregate).write_json("reports/runit.json")
"""

import json
import math
import platform
import socket
import sys
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .results import RunAggregate, TestCaseResult

GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

PASS_SYMBOL = "+"
FAIL_SYMBOL = "×"
BRANCH = "├──"
LAST_BRANCH = "└──"
PIPE = "│"
INDENT = "  "
ERROR_INDENT = "   "


def format_time(ms: float) -> str:
    """
    Format a duration using the largest sensible unit.

    Microseconds below 1ms, milliseconds below 1s, seconds above.
    Values are rounded half-up to a whole number of the unit, and the unit
    is picked after rounding so 999.6ms renders as 1s.
    """
    micros = math.floor(ms * 1000 + 0.5)
    if micros < 1000:
        return f"{micros}µs"
    millis = math.floor(ms + 0.5)
    if millis < 1000:
        return f"{millis}ms"
    return f"{math.floor(ms / 1000 + 0.5)}s"


def format_inputs(inputs: Optional[Sequence[Any]]) -> str:
    """Render a data row as compact reprs joined with ', '."""
    if inputs is None:
        return ""
    return ", ".join(repr(value) for value in inputs)


def _paint(text: str, color: str, colorize: bool) -> str:
    return f"{color}{text}{RESET}" if colorize else text


def _symbol(passed: bool, colorize: bool) -> str:
    if passed:
        return _paint(PASS_SYMBOL, GREEN, colorize)
    return _paint(FAIL_SYMBOL, RED, colorize)


def _summarize(cases: Iterable[TestCaseResult]) -> tuple:
    cases = list(cases)
    return all(c.passed for c in cases), sum(c.elapsed_ms for c in cases)


def render_tree(aggregate: RunAggregate, colorize: bool = False) -> List[str]:
    """Render the per-class tree, one list entry per line."""
    lines: List[str] = []
    for cls, methods in aggregate.results.items():
        passed, elapsed = _summarize(c for cases in methods.values() for c in cases)
        lines.append(f"[{_symbol(passed, colorize)}] {cls.__name__} ({format_time(elapsed)})")

        names = list(methods)
        for i, name in enumerate(names):
            cases = methods[name]
            is_last = i == len(names) - 1
            passed, elapsed = _summarize(cases)
            connector = LAST_BRANCH if is_last else BRANCH
            lines.append(f"{INDENT}{connector} [{_symbol(passed, colorize)}] {name} ({format_time(elapsed)})")

            if not cases or cases[0].inputs is None:
                continue
            prefix = INDENT + (" " if is_last else PIPE) + "   "
            for j, case in enumerate(cases):
                case_connector = LAST_BRANCH if j == len(cases) - 1 else BRANCH
                lines.append(
                    f"{prefix}{case_connector} [{_symbol(case.passed, colorize)}] "
                    f"{format_inputs(case.inputs)} ({format_time(case.elapsed_ms)})"
                )
    return lines


def render_failures(aggregate: RunAggregate, colorize: bool = False) -> List[str]:
    """Render the numbered failure listing (empty when nothing failed)."""
    failures = aggregate.failures()
    if not failures:
        return []

    lines = ["Failures:"]
    for index, (cls, method, result) in enumerate(failures, 1):
        lines.append(f"{index}. {cls.__name__}.{method}")
        if result.inputs is not None:
            lines.append(f"{ERROR_INDENT}Inputs: {format_inputs(result.inputs)}")
        message = "\n".join(ERROR_INDENT + line for line in str(result.error_message).split("\n"))
        lines.append(_paint(message, RED, colorize))
        lines.append("")
    return lines


def render_summary(aggregate: RunAggregate, elapsed_ms: float, colorize: bool = False) -> List[str]:
    total = aggregate.total
    return [
        f"Ran {total} test{'s' if total != 1 else ''} in {format_time(elapsed_ms)}",
        _paint(f"Passed: {aggregate.passed}", GREEN, colorize),
        _paint(f"Failed: {aggregate.failed}", RED, colorize),
    ]


def render(aggregate: RunAggregate, elapsed_ms: float, colorize: bool = False) -> str:
    """
    Render the full text report.

    Args:
        aggregate: Results of a run
        elapsed_ms: Wall time of the run
        colorize: Wrap symbols and labels in ANSI color codes

    Returns:
        Report text: tree, blank line, failures, summary
    """
    lines = render_tree(aggregate, colorize)
    lines.append("")
    lines.extend(render_failures(aggregate, colorize))
    lines.extend(render_summary(aggregate, elapsed_ms, colorize))
    return "\n".join(lines)


@dataclass
class ReportMetadata:
    """
    Metadata about the environment a run happened in.

    Attributes:
        run_id: Unique identifier for this run
        timestamp: ISO 8601 timestamp
        hostname: Machine hostname
        platform: Operating system platform
        python_version: Interpreter version
    """
    run_id: str
    timestamp: str
    hostname: str
    platform: str
    python_version: str


class ReportGenerator:
    """
    Generates JSON reports from a run aggregate.

    Data row values that JSON cannot represent are written as their repr.
    """

    def __init__(self, aggregate: RunAggregate, run_id: Optional[str] = None):
        self.aggregate = aggregate
        self.run_id = run_id or f"runit-{int(datetime.now().timestamp())}"

    def build_metadata(self) -> ReportMetadata:
        return ReportMetadata(
            run_id=self.run_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
            hostname=socket.gethostname(),
            platform=sys.platform,
            python_version=platform.python_version(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": "1.0",
            "metadata": asdict(self.build_metadata()),
            "summary": {
                "passed": self.aggregate.passed,
                "failed": self.aggregate.failed,
                "total": self.aggregate.total,
                "elapsed_ms": self.aggregate.elapsed_ms,
            },
            "classes": self.aggregate.to_dict()["classes"],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=repr, ensure_ascii=False)

    def write_json(self, path: str, indent: int = 2) -> Path:
        """
        Write JSON report to file.

        Args:
            path: Output file path
            indent: JSON indentation level

        Returns:
            Path to written file
        """
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.to_json(indent=indent))

        return output_path
