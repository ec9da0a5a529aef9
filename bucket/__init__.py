"""Serve a flat directory of files as an HTTP object store."""

__version__ = "0.1.0"
