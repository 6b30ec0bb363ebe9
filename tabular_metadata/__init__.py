"""Extract normalized metadata snapshots from tabular semantic models."""

__title__ = "tabular-metadata"
__version__ = "0.1.0"
