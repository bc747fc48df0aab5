"""Bundled data files: the metadata JSON schema and the MLFS catalog snapshot."""
