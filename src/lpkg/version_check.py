"""Host requirements check.

Reads the ``ver_check``/``ver_kernel`` lines of the book's host-requirements
script (published inside ``<pre>`` blocks) and runs each one against the
local system.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from lpkg.net import fetch_text

logger = logging.getLogger(__name__)

# argv -> stdout, or None when the command is missing or exits non-zero
HostCommand = Callable[[list[str]], "str | None"]

ALIASES = (("awk", "GNU"), ("yacc", "Bison"), ("sh", "Bash"))


def run_host_command(argv: list[str]) -> str | None:
    try:
        result = subprocess.run(argv, capture_output=True, text=True, check=False)
    except OSError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def version_tuple(text: str) -> tuple[int, ...]:
    """Numeric components of *text*; ``"6.8.0-45-generic"`` → ``(6, 8, 0, 45)``."""
    return tuple(int(part) for part in re.split(r"[.\-]", text) if part.isdigit())


def version_at_least(installed: str, required: str) -> bool:
    """True when *installed* >= *required*, compared component-wise.

    An unparseable installed version never satisfies a requirement.
    """
    have = version_tuple(installed)
    want = version_tuple(required)
    if not have:
        return False
    for a, b in zip(have, want):
        if a != b:
            return a > b
    return len(have) >= len(want)


@dataclass
class CheckResult:
    name: str
    ok: bool
    message: str
    required: bool = True


@dataclass
class VersionReport:
    checks: list[CheckResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(c.ok for c in self.checks if c.required)

    @property
    def failures(self) -> list[CheckResult]:
        return [c for c in self.checks if c.required and not c.ok]


# ------------------------------------------------------------------
# Individual checks
# ------------------------------------------------------------------


def check_program(program: str, command: str, minimum: str, run_command: HostCommand) -> CheckResult:
    output = run_command([command, "--version"])
    if output is None:
        return CheckResult(program, False, f"Cannot find {program}")
    first = output.splitlines()[0] if output else ""
    tokens = first.split()
    installed = tokens[-1] if tokens else ""
    if version_at_least(installed, minimum):
        return CheckResult(program, True, f"{program} {installed} >= {minimum}")
    return CheckResult(program, False, f"{program} version {installed} is too old ({minimum} required)")


def check_kernel(minimum: str, run_command: HostCommand) -> CheckResult:
    kernel = run_command(["uname", "-r"]) or ""
    if version_at_least(kernel, minimum):
        return CheckResult("kernel", True, f"Linux Kernel {kernel} >= {minimum}")
    return CheckResult("kernel", False, f"Linux Kernel {kernel} is too old ({minimum} required)")


def check_alias(command: str, expected: str, run_command: HostCommand) -> CheckResult:
    output = run_command([command, "--version"])
    if output is not None and expected.lower() in output.lower():
        return CheckResult(command, True, f"{command} is {expected}", required=False)
    return CheckResult(command, False, f"{command} is NOT {expected}", required=False)


def check_compiler(run_command: HostCommand) -> CheckResult:
    if run_command(["g++", "--version"]) is not None:
        return CheckResult("g++", True, "g++ works")
    return CheckResult("g++", False, "g++ does NOT work")


def check_nproc(run_command: HostCommand) -> CheckResult:
    cores = run_command(["nproc"]) or ""
    if cores:
        return CheckResult("nproc", True, f"nproc reports {cores} logical cores available")
    return CheckResult("nproc", False, "nproc is not available or empty")


# ------------------------------------------------------------------
# Page driven run
# ------------------------------------------------------------------


def parse_requirements(html: str) -> list[tuple[str, ...]]:
    """Extract ``("program", name, cmd, min)`` and ``("kernel", min)`` entries."""
    doc = BeautifulSoup(html, "html.parser")
    found: list[tuple[str, ...]] = []
    for pre in doc.find_all("pre"):
        for line in pre.get_text().splitlines():
            parts = line.strip().split()
            if not parts:
                continue
            if parts[0] == "ver_check" and len(parts) >= 4:
                found.append(("program", parts[1], parts[2], parts[3]))
            elif parts[0] == "ver_kernel" and len(parts) >= 2:
                found.append(("kernel", parts[1]))
    return found


def run_version_checks(
    url: str,
    *,
    fetch: Callable[[str], str] | None = None,
    run_command: HostCommand | None = None,
) -> VersionReport:
    """Fetch the host-requirements page at *url* and run every check on it.

    Raises:
        FetchError: The page could not be fetched.
    """
    run_command = run_command or run_host_command
    html = (fetch or fetch_text)(url)
    report = VersionReport()

    for entry in parse_requirements(html):
        if entry[0] == "program":
            _, program, command, minimum = entry
            report.checks.append(check_program(program, command, minimum, run_command))
        else:
            report.checks.append(check_kernel(entry[1], run_command))

    for command, expected in ALIASES:
        report.checks.append(check_alias(command, expected, run_command))
    report.checks.append(check_compiler(run_command))
    report.checks.append(check_nproc(run_command))

    for check in report.checks:
        if check.ok:
            logger.debug("OK: %s", check.message)
        else:
            logger.info("FAILED: %s", check.message)
    return report
