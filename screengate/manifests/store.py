"""Loading and validation of screen manifest batches."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError as SchemaValidationError

from ..logging import get_logger
from ..models import ScreenManifest, Severity
from ..results import ViolationKind
from .schema import SCREEN_MANIFEST_SCHEMA

Batch = Union[Path, str, Sequence[Mapping[str, Any]]]


@dataclass
class ManifestIssue:
    """Represents a single problem found in one manifest record."""

    screen_id: str
    severity: Severity
    message: str
    kind: ViolationKind = ViolationKind.SEMANTIC

    def to_dict(self) -> Dict[str, str]:
        return {
            "screenId": self.screen_id,
            "severity": self.severity.value,
            "message": self.message,
            "kind": self.kind.value,
        }


@dataclass
class ManifestLoadResult:
    """Manifests that passed validation plus every issue found in the batch."""

    manifests: List[ScreenManifest] = field(default_factory=list)
    issues: List[ManifestIssue] = field(default_factory=list)
    total_records: int = 0

    @property
    def errors(self) -> List[ManifestIssue]:
        return [issue for issue in self.issues if issue.severity is Severity.ERROR]

    @property
    def warnings(self) -> List[ManifestIssue]:
        return [issue for issue in self.issues if issue.severity is Severity.WARN]

    @property
    def ok(self) -> bool:
        return not self.errors

    def by_id(self) -> Dict[str, ScreenManifest]:
        return {manifest.screen_id: manifest for manifest in self.manifests}


def is_manifest_file(path: Path) -> bool:
    name = path.name
    return name.endswith(".json") and not name.startswith("_") and ".states." not in name


class ManifestStore:
    """Validates screen manifest records against the schema and semantic rules."""

    def __init__(self, schema: Optional[Mapping[str, Any]] = None) -> None:
        self._validator = Draft202012Validator(dict(schema or SCREEN_MANIFEST_SCHEMA))
        self.logger = get_logger("manifests")

    def load(self, batch: Batch) -> ManifestLoadResult:
        """Load a batch from a directory or from in-memory records.

        Every record is checked; issues are collected for the whole batch rather
        than stopping at the first one. Only records without error-severity
        issues become ``ScreenManifest`` objects.
        """
        result = ManifestLoadResult()
        records: List[Tuple[str, Mapping[str, Any]]] = []
        for label, raw in self._iter_records(batch, result):
            if not isinstance(raw, Mapping):
                result.issues.append(
                    ManifestIssue(label, Severity.ERROR, "Schema: / manifest must be a JSON object", ViolationKind.SCHEMA)
                )
                continue
            records.append((self._screen_id_for(raw, label), raw))
        result.total_records += len(records)

        counts = Counter(screen_id for screen_id, _ in records)
        candidates: List[Tuple[str, Mapping[str, Any]]] = []
        for screen_id, raw in records:
            issues = self.check(raw, screen_id)
            if counts[screen_id] > 1:
                issues.append(
                    ManifestIssue(
                        screen_id,
                        Severity.ERROR,
                        f"Duplicate screenId in batch: {screen_id}",
                        ViolationKind.SEMANTIC,
                    )
                )
            result.issues.extend(issues)
            if not any(issue.severity is Severity.ERROR for issue in issues):
                candidates.append((screen_id, raw))

        result.manifests = sorted(
            (ScreenManifest.from_dict(raw) for _, raw in candidates),
            key=lambda manifest: manifest.screen_id,
        )
        self.logger.info(
            "Loaded %d manifest(s): %d error(s), %d warning(s)",
            result.total_records,
            len(result.errors),
            len(result.warnings),
        )
        return result

    def check(self, record: Mapping[str, Any], screen_id: str) -> List[ManifestIssue]:
        """Return schema and semantic issues for a single record."""
        issues = [
            ManifestIssue(screen_id, Severity.ERROR, f"Schema: {_format_schema_error(error)}", ViolationKind.SCHEMA)
            for error in sorted(self._validator.iter_errors(record), key=_schema_error_key)
        ]

        contracts = record.get("interactiveContracts")
        if isinstance(contracts, list) and not contracts:
            issues.append(ManifestIssue(screen_id, Severity.WARN, "No interactiveContracts defined"))
        states = record.get("uiStates")
        if isinstance(states, list) and not states:
            issues.append(ManifestIssue(screen_id, Severity.WARN, "No uiStates defined"))
        render_model = record.get("renderModel")
        if isinstance(render_model, Mapping):
            components = render_model.get("components")
            if isinstance(components, Mapping) and not components:
                issues.append(
                    ManifestIssue(screen_id, Severity.ERROR, "renderModel.components must not be empty")
                )
        return issues

    def _iter_records(self, batch: Batch, result: ManifestLoadResult) -> Iterable[Tuple[str, Any]]:
        if isinstance(batch, (str, Path)):
            directory = Path(batch)
            if not directory.is_dir():
                raise FileNotFoundError(f"Manifest directory not found: {directory}")
            for path in sorted(p for p in directory.iterdir() if p.is_file() and is_manifest_file(p)):
                try:
                    yield path.stem, json.loads(path.read_text(encoding="utf-8"))
                except (OSError, json.JSONDecodeError) as exc:
                    self.logger.warning("Could not read manifest %s: %s", path.name, exc)
                    result.total_records += 1
                    result.issues.append(
                        ManifestIssue(path.stem, Severity.ERROR, f"Unreadable manifest: {exc}", ViolationKind.SCHEMA)
                    )
            return
        for index, raw in enumerate(batch):
            yield f"#{index}", raw

    @staticmethod
    def _screen_id_for(record: Mapping[str, Any], fallback: str) -> str:
        screen_id = record.get("screenId")
        if isinstance(screen_id, str) and screen_id:
            return screen_id
        return fallback


def _format_schema_error(error: SchemaValidationError) -> str:
    pointer = "/" + "/".join(str(part) for part in error.absolute_path)
    return f"{pointer} {error.message}".strip()


def _schema_error_key(error: SchemaValidationError) -> Tuple[str, str]:
    return ("/".join(str(part) for part in error.absolute_path), error.message)


__all__ = ["ManifestIssue", "ManifestLoadResult", "ManifestStore", "is_manifest_file"]
