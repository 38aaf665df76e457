"""Screen manifest loading and validation."""

from .schema import EXECUTION_PLAN_SCHEMA, SCREEN_MANIFEST_SCHEMA
from .store import ManifestIssue, ManifestLoadResult, ManifestStore, is_manifest_file

__all__ = [
    "EXECUTION_PLAN_SCHEMA",
    "SCREEN_MANIFEST_SCHEMA",
    "ManifestIssue",
    "ManifestLoadResult",
    "ManifestStore",
    "is_manifest_file",
]
