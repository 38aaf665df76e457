"""Execution planning, scoring and remediation for batch screen migrations."""

__version__ = "0.1.0"
