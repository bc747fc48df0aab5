"""Package definitions, module scaffolding and the MLFS catalog."""

from lpkg.pkgs.package import OptimizationSettings, PackageDefinition

__all__ = ["OptimizationSettings", "PackageDefinition"]
