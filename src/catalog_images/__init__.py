"""Fetch, resize and store the images referenced by a catalog."""

__version__ = "0.1.0"
