"""Cynos Nexus backend: server bootstrap, transport, CORS and request middleware."""

__version__ = "0.1.0"
