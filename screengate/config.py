"""Configuration loading for screengate (.screengate.yml)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

CONFIG_FILENAME = ".screengate.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration or a schema definition cannot be loaded."""


@dataclass
class PathsConfig:
    """Batch directories, relative to the configuration root."""

    manifests: Path
    evidence: Path
    reports: Path


@dataclass
class SchemaConfig:
    """Optional overrides for the bundled JSON schemas."""

    manifest: Optional[Dict[str, Any]] = None
    execution_plan: Optional[Dict[str, Any]] = None


@dataclass
class PlanningConfig:
    break_mutual_links: bool = False


@dataclass
class ScoringThresholds:
    """Thresholds used when turning evidence into dimension statuses."""

    visual_pass_below: float = 2.0
    visual_fail_above: float = 10.0
    max_load_time_ms: float = 3000.0
    max_bundle_kb: float = 250.0


@dataclass
class RemediationPolicy:
    """Acceptance policy and cycle cap for the remediation loop."""

    enabled: bool = True
    max_cycles: int = 3
    min_pass_rate: float = 1.0
    max_needs_review_rate: float = 0.0
    require_zero_critical_failures: bool = True
    strict_pass_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "maxCycles": self.max_cycles,
            "minPassRate": self.min_pass_rate,
            "maxNeedsReviewRate": self.max_needs_review_rate,
            "requireZeroCriticalFailures": self.require_zero_critical_failures,
            "strictPassRequired": self.strict_pass_required,
        }


@dataclass
class CommandsConfig:
    """Shell commands for the external capture and fix collaborators."""

    capture: Optional[str] = None
    fix: Optional[str] = None


@dataclass
class ScreenGateConfig:
    """Represents the high-level settings defined in .screengate.yml."""

    root: Path
    paths: PathsConfig
    schemas: SchemaConfig = field(default_factory=SchemaConfig)
    planning: PlanningConfig = field(default_factory=PlanningConfig)
    scoring: ScoringThresholds = field(default_factory=ScoringThresholds)
    remediation: RemediationPolicy = field(default_factory=RemediationPolicy)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    workers: int = 4


def default_paths(root: Path) -> PathsConfig:
    return PathsConfig(
        manifests=root / "artifacts" / "manifests",
        evidence=root / "artifacts" / "validation",
        reports=root / "artifacts" / "reports",
    )


def load_config(config_path: Path) -> ScreenGateConfig:
    """Load configuration from disk, falling back to defaults when the file is absent."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ScreenGateConfig(root=root, paths=default_paths(root))

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    return parse_config(data, root)


def parse_config(data: Mapping[str, Any], root: Path) -> ScreenGateConfig:
    """Build a configuration object from an already-parsed mapping."""
    paths = default_paths(root)
    paths_data = _as_dict(data.get("paths"))
    for key in ("manifests", "evidence", "reports"):
        value = _as_str(paths_data.get(key))
        if value:
            setattr(paths, key, root / value)

    schemas_data = _as_dict(data.get("schemas"))
    schemas = SchemaConfig(
        manifest=_load_schema_file(root, schemas_data.get("manifest"), "manifest"),
        execution_plan=_load_schema_file(root, schemas_data.get("execution_plan"), "execution_plan"),
    )

    planning_data = _as_dict(data.get("planning"))
    planning = PlanningConfig(
        break_mutual_links=_pick_bool(planning_data, "break_mutual_links", "breakMutualLinks", default=False),
    )

    scoring_data = _as_dict(data.get("scoring"))
    defaults = ScoringThresholds()
    scoring = ScoringThresholds(
        visual_pass_below=_pick_float(scoring_data, "visual_pass_below", "visualPassBelow", default=defaults.visual_pass_below),
        visual_fail_above=_pick_float(scoring_data, "visual_fail_above", "visualFailAbove", default=defaults.visual_fail_above),
        max_load_time_ms=_pick_float(scoring_data, "max_load_time_ms", "maxLoadTimeMs", default=defaults.max_load_time_ms),
        max_bundle_kb=_pick_float(scoring_data, "max_bundle_kb", "maxBundleKb", default=defaults.max_bundle_kb),
    )
    if scoring.visual_pass_below > scoring.visual_fail_above:
        raise ConfigError("scoring.visual_pass_below must not exceed scoring.visual_fail_above")

    remediation = parse_policy(_as_dict(data.get("remediation") or data.get("remediationLoop")))

    commands_data = _as_dict(data.get("commands"))
    commands = CommandsConfig(
        capture=_as_str(commands_data.get("capture")),
        fix=_as_str(commands_data.get("fix")),
    )

    workers = _as_int(data.get("workers"))
    if workers is not None and workers < 1:
        raise ConfigError("workers must be at least 1")

    return ScreenGateConfig(
        root=root,
        paths=paths,
        schemas=schemas,
        planning=planning,
        scoring=scoring,
        remediation=remediation,
        commands=commands,
        workers=workers or 4,
    )


def parse_policy(data: Mapping[str, Any]) -> RemediationPolicy:
    """Parse a remediation policy mapping (camelCase or snake_case keys)."""
    defaults = RemediationPolicy()
    max_cycles = _pick_int(data, "max_cycles", "maxCycles", default=defaults.max_cycles)
    policy = RemediationPolicy(
        enabled=_pick_bool(data, "enabled", "enabled", default=defaults.enabled),
        max_cycles=max_cycles,
        min_pass_rate=_pick_float(data, "min_pass_rate", "minPassRate", default=defaults.min_pass_rate),
        max_needs_review_rate=_pick_float(
            data, "max_needs_review_rate", "maxNeedsReviewRate", default=defaults.max_needs_review_rate
        ),
        require_zero_critical_failures=_pick_bool(
            data,
            "require_zero_critical_failures",
            "requireZeroCriticalFailures",
            default=defaults.require_zero_critical_failures,
        ),
        strict_pass_required=_pick_bool(
            data, "strict_pass_required", "strictPassRequired", default=defaults.strict_pass_required
        ),
    )
    if policy.max_cycles < 1:
        raise ConfigError("remediation.maxCycles must be at least 1")
    for name, rate in (
        ("minPassRate", policy.min_pass_rate),
        ("maxNeedsReviewRate", policy.max_needs_review_rate),
    ):
        if not 0.0 <= rate <= 1.0:
            raise ConfigError(f"remediation.{name} must be within [0, 1], got {rate}")
    return policy


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _load_schema_file(root: Path, value: Any, label: str) -> Optional[Dict[str, Any]]:
    relative = _as_str(value)
    if not relative:
        return None
    schema_path = root / relative
    if not schema_path.exists():
        raise ConfigError(f"{label} schema not found: {schema_path}")
    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to read {label} schema {schema_path}: {exc}") from exc
    if not isinstance(schema, dict):
        raise ConfigError(f"{label} schema must be a JSON object: {schema_path}")
    return schema


def _pick(data: Mapping[str, Any], snake: str, camel: str) -> Any:
    if snake in data:
        return data[snake]
    return data.get(camel)


def _pick_bool(data: Mapping[str, Any], snake: str, camel: str, *, default: bool) -> bool:
    value = _as_bool(_pick(data, snake, camel))
    return default if value is None else value


def _pick_float(data: Mapping[str, Any], snake: str, camel: str, *, default: float) -> float:
    value = _as_float(_pick(data, snake, camel))
    return default if value is None else value


def _pick_int(data: Mapping[str, Any], snake: str, camel: str, *, default: int) -> int:
    value = _as_int(_pick(data, snake, camel))
    return default if value is None else value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) and str(value) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "CommandsConfig",
    "ConfigError",
    "PathsConfig",
    "PlanningConfig",
    "RemediationPolicy",
    "SchemaConfig",
    "ScoringThresholds",
    "ScreenGateConfig",
    "load_config",
    "parse_config",
    "parse_policy",
]
