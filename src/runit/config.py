"""
Configuration handling for runit.

Two layers:
- RunOptions: what a single run() call needs (reporter callback, colors)
- RunnerConfig: project settings loaded from YAML for the CLI

Example YAML configuration:
    roots:
      - tests/unit
    pattern: "test_*.py"
    colors: true
    report_path: reports/runit.json

Example usage:
    from runit.config import load_config

    config = load_config("runit.yaml")
    runner = TestRunner(*config.roots, pattern=config.pattern)
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from .discovery import DEFAULT_PATTERN
from .errors import ConfigurationError

Reporter = Callable[[str], None]

CONFIG_CANDIDATES = (
    "runit.yaml",
    "runit.yml",
    ".runit.yaml",
    ".runit.yml",
)


@dataclass(frozen=True)
class RunOptions:
    """
    Options for one run.

    Attributes:
        reporter: Callback receiving the rendered report (default: print)
        colors: Colorize the report with ANSI codes
    """
    reporter: Reporter = print
    colors: bool = False

    def merge(self, overrides: Optional[Union["RunOptions", Dict[str, Any]]]) -> "RunOptions":
        """
        Return these options updated with a partial set of overrides.

        Raises:
            ConfigurationError: On unknown option names or invalid values
        """
        if overrides is None:
            return self
        if isinstance(overrides, RunOptions):
            return overrides
        if not isinstance(overrides, dict):
            raise ConfigurationError(f"Run options must be a dict or RunOptions, got {type(overrides).__name__}")

        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(f"Unknown run option(s): {', '.join(unknown)}")

        merged = replace(self, **overrides)
        if not callable(merged.reporter):
            raise ConfigurationError("Run option 'reporter' must be callable")
        if not isinstance(merged.colors, bool):
            raise ConfigurationError("Run option 'colors' must be a boolean")
        return merged


DEFAULT_RUN_OPTIONS = RunOptions()


class RunnerConfig:
    """
    Project configuration for the runit CLI.

    Attributes:
        roots: Containers to discover tests under
        pattern: File name pattern for test modules
        colors: Colorize the text report
        report_path: Optional path for a JSON report
    """

    def __init__(
        self,
        roots: Optional[List[str]] = None,
        pattern: str = DEFAULT_PATTERN,
        colors: bool = False,
        report_path: Optional[str] = None,
    ):
        self.roots = roots or []
        self.pattern = pattern
        self.colors = colors
        self.report_path = report_path

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunnerConfig":
        """
        Create configuration from a dictionary.

        Raises:
            ConfigurationError: If a field has the wrong type
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a mapping")

        roots = data.get("roots", [])
        if isinstance(roots, str):
            roots = [roots]
        if not isinstance(roots, list) or not all(isinstance(r, str) for r in roots):
            raise ConfigurationError("'roots' must be a list of strings")

        pattern = data.get("pattern", DEFAULT_PATTERN)
        if not isinstance(pattern, str) or not pattern:
            raise ConfigurationError("'pattern' must be a non-empty string")

        colors = data.get("colors", False)
        if not isinstance(colors, bool):
            raise ConfigurationError("'colors' must be a boolean")

        report_path = data.get("report_path")
        if report_path is not None and not isinstance(report_path, str):
            raise ConfigurationError("'report_path' must be a string")

        return cls(roots=roots, pattern=pattern, colors=colors, report_path=report_path)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RunnerConfig":
        """
        Load configuration from a YAML file.

        Roots naming a directory next to the file are resolved against the
        file's directory; anything else is kept as a dotted package name.

        Raises:
            ConfigurationError: If the file is missing, empty or invalid
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            raise ConfigurationError(f"Empty or invalid YAML file: {path}")

        config = cls.from_dict(data)
        resolved = []
        for root in config.roots:
            local = path.parent / root
            if not Path(root).is_absolute() and local.is_dir():
                root = str(local)
            resolved.append(root)
        config.roots = resolved
        return config


def find_config_file(directory: Optional[Path] = None) -> Optional[Path]:
    """Find a runit configuration file in the given (or current) directory."""
    base = directory or Path.cwd()
    for name in CONFIG_CANDIDATES:
        candidate = base / name
        if candidate.exists():
            return candidate
    return None


def load_config(source: Union[str, Path, Dict[str, Any]]) -> RunnerConfig:
    """
    Load configuration from a YAML path or a dictionary.

    Args:
        source: Configuration source

    Returns:
        RunnerConfig instance
    """
    if isinstance(source, dict):
        return RunnerConfig.from_dict(source)
    return RunnerConfig.from_yaml(source)
