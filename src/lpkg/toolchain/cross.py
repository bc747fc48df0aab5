"""Cross-toolchain build orchestrator.

Replays the configure/build/install commands parsed from a live book page
against a real LFS tree. The run is a linear state sequence with no retries:

    INIT → SOURCE_RESOLVED → CONFIGURED → BUILT → INSTALLED

Any failure moves to FAILED and raises; re-running from the start is the only
recovery, and an already-extracted source tree is reused.
"""

from __future__ import annotations

import enum
import logging
import os
import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from lpkg.config import DEFAULT_TARGET
from lpkg.errors import BuildError, CommandError, FetchError
from lpkg.net import download_to, fetch_text
from lpkg.parsing.instructions import BuildInfo, InstructionPageParser

logger = logging.getLogger(__name__)

Runner = Callable[[list[str], Path], int]


class BuildState(enum.Enum):
    INIT = "init"
    SOURCE_RESOLVED = "source-resolved"
    CONFIGURED = "configured"
    BUILT = "built"
    INSTALLED = "installed"
    FAILED = "failed"


def run_process(argv: list[str], cwd: Path) -> int:
    """Run *argv* in *cwd* with inherited stdio and return its exit status."""
    logger.info("Running %s (cwd=%s)", " ".join(argv), cwd)
    try:
        completed = subprocess.run(argv, cwd=cwd, check=False)
    except OSError as exc:
        raise BuildError("spawn", f"cannot start '{argv[0]}': {exc}") from exc
    return completed.returncode


def split_command(raw: str) -> list[str]:
    """Shell-style tokenisation; an unbalanced quote falls back to the raw string."""
    try:
        return shlex.split(raw)
    except ValueError:
        return [raw]


@dataclass
class ToolchainConfig:
    """Resolved settings for one build run.

    Attributes:
        lfs_root: Substituted for ``$LFS``; made absolute on construction.
        target: Substituted for ``$LFS_TGT``.
        info: Parsed instructions for the package.
        identity: Lowercase string identifying the package's source directory.
        src_dir: Explicit source base directory (else ``$BINUTILS_SRC_DIR``,
            else a fixed path below *lfs_root*).
    """

    lfs_root: Path
    target: str
    info: BuildInfo
    identity: str = "binutils"
    src_dir: Path | None = None

    def __post_init__(self) -> None:
        # Child processes run with cwd set to the build or source dir.
        self.lfs_root = Path(self.lfs_root).absolute()
        if self.src_dir is not None:
            self.src_dir = Path(self.src_dir).absolute()

    @classmethod
    def resolve(
        cls,
        lfs_root: Path | str,
        info: BuildInfo,
        target: str | None = None,
        *,
        identity: str = "binutils",
        src_dir: Path | str | None = None,
    ) -> ToolchainConfig:
        """Apply the argument → environment → default precedence."""
        resolved_target = target or os.environ.get("LFS_TGT") or DEFAULT_TARGET
        resolved_src = src_dir or os.environ.get("BINUTILS_SRC_DIR")
        return cls(
            lfs_root=Path(lfs_root),
            target=resolved_target,
            info=info,
            identity=identity.lower(),
            src_dir=Path(resolved_src) if resolved_src else None,
        )

    def source_base_dir(self) -> Path:
        if self.src_dir is not None:
            return self.src_dir
        return self.lfs_root / "src" / "pkgs" / "by-name" / self.identity[:2] / self.identity

    def build_dir(self) -> Path:
        return self.lfs_root / "build" / f"{self.identity}-pass1"

    def install_dir(self) -> Path:
        return self.lfs_root / "tools"

    def substitute(self, arg: str) -> str:
        # $LFS_TGT first: $LFS is a prefix of it.
        return arg.replace("$LFS_TGT", self.target).replace("$LFS", str(self.lfs_root))

    def fallback_configure_args(self) -> list[str]:
        return [
            f"--prefix={self.install_dir()}",
            f"--with-sysroot={self.lfs_root}",
            f"--target={self.target}",
            "--disable-nls",
            "--disable-werror",
        ]


class CrossToolchainBuild:
    """One fail-fast run of the configure/build/install sequence."""

    def __init__(
        self,
        config: ToolchainConfig,
        runner: Runner | None = None,
        downloader: Callable[[str, Path], Path] | None = None,
    ) -> None:
        self.config = config
        self.state = BuildState.INIT
        self.source_dir: Path | None = None
        self._run = runner or run_process
        self._download = downloader or download_to

    def run(self) -> BuildState:
        """Execute every step in order; raises BuildError after moving to FAILED."""
        try:
            self.source_dir = self.resolve_source()
            self.state = BuildState.SOURCE_RESOLVED
            self.configure()
            self.state = BuildState.CONFIGURED
            self.build()
            self.state = BuildState.BUILT
            self.install()
            self.state = BuildState.INSTALLED
        except BuildError:
            self.state = BuildState.FAILED
            raise
        return self.state

    # ------------------------------------------------------------------
    # Source resolution
    # ------------------------------------------------------------------

    def locate_source_dir(self, base: Path) -> Path | None:
        if not base.exists():
            return None
        for entry in sorted(base.iterdir()):
            if entry.is_dir() and self.config.identity in entry.name.lower():
                return entry
        return None

    def resolve_source(self) -> Path:
        base = self.config.source_base_dir()
        if not base.exists():
            logger.info("Creating source base dir %s", base)
            base.mkdir(parents=True, exist_ok=True)

        found = self.locate_source_dir(base)
        if found is None:
            found = self.download_and_extract(base)
        if found is None:
            raise BuildError("source", f"could not locate or acquire source in '{base}'")
        logger.info("Using source dir %s", found)
        return found

    def download_and_extract(self, base: Path) -> Path | None:
        url = self.config.info.download_url
        if not url:
            logger.warning("No download URL on the page and no unpacked source present")
            return None

        logger.info("Downloading %s", url)
        try:
            archive = self._download(url, base)
        except FetchError as exc:
            raise BuildError("source", str(exc)) from exc

        logger.info("Extracting archive %s", archive)
        self._check(["tar", "-xf", str(archive), "-C", str(base)], base, "extract")
        return self.locate_source_dir(base)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _check(self, argv: list[str], cwd: Path, step: str) -> None:
        returncode = self._run(argv, cwd)
        if returncode != 0:
            raise CommandError(step, argv, returncode)

    def _ensure_build_dir(self) -> Path:
        build_dir = self.config.build_dir()
        if not build_dir.exists():
            logger.info("Creating build dir %s", build_dir)
            build_dir.mkdir(parents=True, exist_ok=True)
        return build_dir

    def configure(self) -> None:
        if self.source_dir is None:
            raise BuildError(
                "configure", "source directory not resolved; run resolve_source() first"
            )
        build_dir = self._ensure_build_dir()
        configure = self.source_dir / "configure"
        if not configure.exists():
            raise BuildError("configure", f"configure script not found at '{configure}'")

        args = self.config.info.configure_args or self.config.fallback_configure_args()
        args = [self.config.substitute(a) for a in args]
        logger.info("Configuring with args: %s", args)
        self._check([str(configure), *args], build_dir, "configure")

    def _run_commands(self, commands: list[str], default: list[str], step: str) -> None:
        build_dir = self._ensure_build_dir()
        if not commands:
            self._check(default, build_dir, step)
            return
        for raw in commands:
            argv = split_command(raw)
            if argv:
                self._check(argv, build_dir, step)

    def build(self) -> None:
        self._run_commands(self.config.info.build_cmds, ["make"], "build")

    def install(self) -> None:
        self._run_commands(self.config.info.install_cmds, ["make", "install"], "install")


def build_from_page(
    page_url: str,
    lfs_root: Path | str,
    target: str | None = None,
    *,
    identity: str = "binutils",
    src_dir: Path | str | None = None,
    fetch: Callable[[str], str] | None = None,
    runner: Runner | None = None,
    downloader: Callable[[str, Path], Path] | None = None,
) -> CrossToolchainBuild:
    """Fetch *page_url*, parse it and run the full build.

    Returns the finished build (state INSTALLED).

    Raises:
        FetchError: The page could not be fetched.
        BuildError: Any step failed.
    """
    logger.info("Fetching page %s", page_url)
    html = (fetch or fetch_text)(page_url)
    info = InstructionPageParser(identity=identity).parse(html, page_url)
    logger.debug("Parsed build info: %s", info)

    config = ToolchainConfig.resolve(lfs_root, info, target, identity=identity, src_dir=src_dir)
    build = CrossToolchainBuild(config, runner=runner, downloader=downloader)
    build.run()
    return build
