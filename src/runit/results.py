"""Result data structures produced by the runner."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class TestCaseResult:
    """
    Outcome of one test case.

    Attributes:
        elapsed_ms: Execution time in milliseconds
        error_message: Failure text (None when the case passed)
        error_type: Name of the raised exception class (None when passed)
        inputs: Data row the case ran with (None for Facts)
    """
    __test__ = False

    elapsed_ms: float
    error_message: Optional[str] = None
    error_type: Optional[str] = None
    inputs: Optional[Tuple[Any, ...]] = None

    @property
    def passed(self) -> bool:
        return self.error_message is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": "PASS" if self.passed else "FAIL",
            "elapsed_ms": self.elapsed_ms,
            "error_message": self.error_message,
            "error_type": self.error_type,
            "inputs": list(self.inputs) if self.inputs is not None else None,
        }


MethodResults = Dict[str, List[TestCaseResult]]


@dataclass
class RunAggregate:
    """
    Everything one run() produced.

    Classes and methods keep the order they were executed in.

    Attributes:
        passed: Count of passing cases
        failed: Count of failing cases
        results: class -> method name -> case results
        elapsed_ms: Wall time of the whole run
    """
    passed: int = 0
    failed: int = 0
    results: Dict[type, MethodResults] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    @property
    def total(self) -> int:
        return self.passed + self.failed

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def record(self, cls: type, method: str, result: TestCaseResult) -> None:
        """Append one case result and update the counters."""
        self.results.setdefault(cls, {}).setdefault(method, []).append(result)
        if result.passed:
            self.passed += 1
        else:
            self.failed += 1

    def cases(self) -> Iterator[Tuple[type, str, TestCaseResult]]:
        """Yield (class, method, result) in execution order."""
        for cls, methods in self.results.items():
            for method, cases in methods.items():
                for result in cases:
                    yield cls, method, result

    def failures(self) -> List[Tuple[type, str, TestCaseResult]]:
        return [case for case in self.cases() if not case[2].passed]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "passed": self.passed,
            "failed": self.failed,
            "total": self.total,
            "elapsed_ms": self.elapsed_ms,
            "classes": [
                {
                    "name": cls.__name__,
                    "module": cls.__module__,
                    "methods": [
                        {"name": method, "cases": [r.to_dict() for r in cases]}
                        for method, cases in methods.items()
                    ],
                }
                for cls, methods in self.results.items()
            ],
        }
