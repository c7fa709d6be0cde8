"""Supervisor that drives an OpenCode agent until file changes are verified."""

__version__ = "0.1.0"
