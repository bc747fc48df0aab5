"""Tests for the host requirements check."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from lpkg.version_check import (
    CheckResult,
    VersionReport,
    check_alias,
    check_kernel,
    check_program,
    parse_requirements,
    run_host_command,
    run_version_checks,
    version_at_least,
    version_tuple,
)

HOST_REQS_PAGE = """<html><body>
<h1 class="sect1">2.2. Host System Requirements</h1>
<pre class="userinput"><kbd class="command">cat &gt; version-check.sh &lt;&lt; "EOF"
ver_check Coreutils      sort     8.1
ver_check Bash           bash     3.2
ver_check Binutils       ld       2.13.1
ver_kernel 5.4
EOF</kbd></pre>
</body></html>
"""

HOST = {
    ("sort", "--version"): "sort (GNU coreutils) 9.4\nCopyright",
    ("bash", "--version"): "GNU bash, version 5.2.21(1)-release",
    ("ld", "--version"): "GNU ld (GNU Binutils) 2.42",
    ("uname", "-r"): "6.8.0-45-generic",
    ("awk", "--version"): "GNU Awk 5.2.1",
    ("yacc", "--version"): "bison (GNU Bison) 3.8.2",
    ("sh", "--version"): "dash: illegal option",
    ("g++", "--version"): "g++ 13.2.0",
    ("nproc",): "16",
}


def _host(host: dict):
    def run_command(argv: list[str]) -> str | None:
        return host.get(tuple(argv))

    return run_command


# ------------------------------------------------------------------
# Version comparison
# ------------------------------------------------------------------


def test_version_tuple():
    assert version_tuple("6.8.0-45-generic") == (6, 8, 0, 45)
    assert version_tuple("2.13.1") == (2, 13, 1)
    assert version_tuple("release") == ()


@pytest.mark.parametrize(
    "installed, required, expected",
    [
        ("9.4", "8.1", True),
        ("2.42", "2.13.1", True),
        ("2.13.1", "2.13.1", True),
        ("2.13", "2.13.1", False),
        ("5.3", "5.4", False),
        ("", "1.0", False),
    ],
)
def test_version_at_least(installed, required, expected):
    assert version_at_least(installed, required) is expected


# ------------------------------------------------------------------
# Individual checks
# ------------------------------------------------------------------


def test_check_program_uses_last_token_of_first_line():
    result = check_program("Coreutils", "sort", "8.1", _host(HOST))
    assert result.ok
    assert result.message == "Coreutils 9.4 >= 8.1"


def test_check_program_too_old():
    result = check_program("Binutils", "ld", "2.45", _host(HOST))
    assert not result.ok
    assert "too old" in result.message


def test_check_program_missing():
    result = check_program("Bison", "bison", "2.7", _host({}))
    assert not result.ok
    assert result.message == "Cannot find Bison"


def test_check_kernel():
    assert check_kernel("5.4", _host(HOST)).ok
    assert not check_kernel("7.0", _host(HOST)).ok


def test_alias_checks_are_advisory():
    result = check_alias("sh", "Bash", _host(HOST))
    assert not result.ok
    assert result.required is False
    assert VersionReport([result]).ok


def test_report_failures():
    report = VersionReport([CheckResult("a", True, ""), CheckResult("b", False, "b failed")])
    assert not report.ok
    assert [c.name for c in report.failures] == ["b"]


# ------------------------------------------------------------------
# Page driven run
# ------------------------------------------------------------------


def test_parse_requirements():
    assert parse_requirements(HOST_REQS_PAGE) == [
        ("program", "Coreutils", "sort", "8.1"),
        ("program", "Bash", "bash", "3.2"),
        ("program", "Binutils", "ld", "2.13.1"),
        ("kernel", "5.4"),
    ]


def test_run_version_checks_all_ok():
    report = run_version_checks(
        "https://example.org/hostreqs.html", fetch=lambda url: HOST_REQS_PAGE, run_command=_host(HOST)
    )
    names = [c.name for c in report.checks]
    assert names == ["Coreutils", "Bash", "Binutils", "kernel", "awk", "yacc", "sh", "g++", "nproc"]
    assert report.ok
    assert [c.name for c in report.checks if not c.ok] == ["sh"]


def test_run_version_checks_missing_compiler():
    host = dict(HOST)
    del host[("g++", "--version")]
    report = run_version_checks("u", fetch=lambda url: HOST_REQS_PAGE, run_command=_host(host))
    assert not report.ok
    assert [c.message for c in report.failures] == ["g++ does NOT work"]


# ------------------------------------------------------------------
# run_host_command
# ------------------------------------------------------------------


def test_run_host_command_missing_program():
    with patch("lpkg.version_check.subprocess.run", side_effect=FileNotFoundError):
        assert run_host_command(["nope", "--version"]) is None


def test_run_host_command_nonzero_exit():
    with patch("lpkg.version_check.subprocess.run") as mock_run:
        mock_run.return_value.returncode = 1
        assert run_host_command(["false"]) is None


def test_run_host_command_output_stripped():
    with patch("lpkg.version_check.subprocess.run") as mock_run:
        mock_run.return_value.returncode = 0
        mock_run.return_value.stdout = "16\n"
        assert run_host_command(["nproc"]) == "16"
