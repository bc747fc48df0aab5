"""Build orchestration for the cross-toolchain bootstrap."""

from lpkg.toolchain.cross import BuildState, CrossToolchainBuild, ToolchainConfig, build_from_page

__all__ = ["BuildState", "CrossToolchainBuild", "ToolchainConfig", "build_from_page"]
