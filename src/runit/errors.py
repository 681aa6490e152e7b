"""
Error types raised by runit.

Test failures never surface as exceptions from the runner; they are
recorded as case results. The types below are configuration-class errors
that abort a run before the report is produced.
"""

from typing import Optional


class RunitError(Exception):
    """Base exception for runit errors."""

    pass


class ConfigurationError(RunitError):
    """Raised for invalid metadata, options or configuration files."""

    pass


class DiscoveryError(ConfigurationError):
    """Raised when a root, module or class cannot be turned into a test class."""

    def __init__(self, message: str, target: Optional[str] = None):
        self.target = target
        if target:
            message = f"{message}: {target}"
        super().__init__(message)


class TeardownError(RunitError):
    """Raised when a test class teardown hook fails."""

    def __init__(self, class_name: str, cause: BaseException):
        self.class_name = class_name
        self.cause = cause
        super().__init__(f"Teardown of '{class_name}' failed: {cause}")
