"""lpkg — harvest, validate, scaffold and replay Linux-From-Scratch build recipes."""

__version__ = "0.1.0"
