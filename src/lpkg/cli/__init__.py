"""Command-line tools: ``lpkg`` (main.py) and ``lpkg-metadata`` (metadata.py)."""
