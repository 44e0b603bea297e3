"""Branch - GitHub profile dashboard with a unified tag store."""

__version__ = "0.1.0"
