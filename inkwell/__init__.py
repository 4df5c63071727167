"""Inkwell - post redirects for a blogging platform."""

__version__ = "0.1.0"
