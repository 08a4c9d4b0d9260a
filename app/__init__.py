"""Cynos Nexus backend application package."""

from cynos import __version__

__all__ = ["__version__"]
