"""Version information for clipcomposer."""

__version__ = "0.1.0"
