"""Module registry files: the ``__init__.py`` listing generated submodules.

A registry is read into a set of module names, extended, and rewritten in a
canonical sorted form, so formatting differences in an existing file never
lead to duplicate entries.
"""

from __future__ import annotations

import re
from pathlib import Path

from lpkg.files import write_atomic

_ENTRY_RE = re.compile(r"^\s*from\s+\.\s+import\s+([A-Za-z_][A-Za-z0-9_]*)\s*(?:#.*)?$")


class ModuleRegistry:
    """Set-of-entries view over one registry ``__init__.py``."""

    def __init__(self, path: Path, description: str = "Generated package modules.") -> None:
        self.path = Path(path)
        self.description = description

    def entries(self) -> set[str]:
        if not self.path.exists():
            return set()
        found: set[str] = set()
        for line in self.path.read_text(encoding="utf-8").splitlines():
            match = _ENTRY_RE.match(line)
            if match:
                found.add(match.group(1))
        return found

    def __contains__(self, name: str) -> bool:
        return name in self.entries()

    def add(self, name: str) -> bool:
        """Register *name*; returns False (and leaves the file alone) if already present."""
        current = self.entries()
        if name in current and self.path.exists():
            return False
        current.add(name)
        write_atomic(self.path, self.render(current))
        return True

    def render(self, names: set[str]) -> str:
        lines = [f'"""{self.description}"""', ""]
        lines.extend(f"from . import {name}" for name in sorted(names))
        return "\n".join(lines) + "\n"
