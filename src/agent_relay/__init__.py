"""Delegate coding tasks to a local coding-agent CLI and extract structured results."""

__version__ = "0.1.0"
