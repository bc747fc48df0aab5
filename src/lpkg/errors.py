"""Exception hierarchy shared by every lpkg layer.

The CLI catches ``LpkgError`` at the command boundary and renders the message;
library code raises the most specific subclass and chains the cause.
"""

from __future__ import annotations


class LpkgError(Exception):
    """Base class for all errors raised by lpkg."""


class ConfigError(LpkgError, ValueError):
    """Raised for invalid configuration, unknown books or a bad base directory."""


class FetchError(LpkgError):
    """Raised when a URL cannot be fetched (transport error or non-2xx status)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch '{url}': {reason}")
        self.url = url
        self.reason = reason


class HarvestError(LpkgError):
    """Raised when a page cannot be turned into package metadata at all."""


class ScaffoldError(LpkgError):
    """Raised when a package module cannot be generated."""


class ModuleExistsError(ScaffoldError):
    """Raised when the target package module directory already exists."""

    def __init__(self, path) -> None:
        super().__init__(f"Package module '{path}' already exists")
        self.path = path


class BuildError(LpkgError):
    """Raised when a build step fails; ``step`` names the failed stage."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"{step}: {message}")
        self.step = step


class CommandError(BuildError):
    """A child process exited with a non-zero status."""

    def __init__(self, step: str, command: list[str], returncode: int) -> None:
        rendered = " ".join(command)
        super().__init__(step, f"command '{rendered}' exited with status {returncode}")
        self.command = command
        self.returncode = returncode


class ChecksumMismatch(LpkgError):
    """Raised when a downloaded file's MD5 does not match the manifest."""

    def __init__(self, filename: str, expected: str, actual: str) -> None:
        super().__init__(f"MD5 mismatch for {filename}: expected {expected}, got {actual}")
        self.filename = filename
        self.expected = expected
        self.actual = actual
