"""ModGraph CLI: dependency graph and load-order analysis for game modules."""

__version__ = "0.3.0"
