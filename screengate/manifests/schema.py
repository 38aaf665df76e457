"""Bundled JSON schemas for screen manifests and execution plans."""

from __future__ import annotations

from typing import Any, Dict

_CONFIDENCE = {"type": "string", "enum": ["low", "medium", "high"]}

SCREEN_MANIFEST_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "screen-manifest.schema.json",
    "title": "ScreenManifest",
    "type": "object",
    "required": [
        "screenId",
        "route",
        "complexity",
        "interactiveContracts",
        "uiStates",
        "renderModel",
        "dataSources",
    ],
    "properties": {
        "screenId": {"type": "string", "minLength": 1},
        "route": {"type": "string", "minLength": 1},
        "pageTitle": {"type": "string"},
        "complexity": {"type": "string", "enum": ["low", "medium", "high"]},
        "complexityFactors": {"type": "array", "items": {"type": "string"}},
        "interactiveContracts": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["trigger"],
                "properties": {
                    "contractId": {"type": "string"},
                    "elementId": {"type": "string"},
                    "trigger": {"type": "string", "minLength": 1},
                    "action": {
                        "type": "object",
                        "properties": {
                            "type": {"type": "string"},
                            "to": {"type": "string"},
                        },
                    },
                    "confidence": _CONFIDENCE,
                },
            },
        },
        "uiStates": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "trigger": {"type": "string"},
                },
            },
        },
        "renderModel": {
            "type": "object",
            "required": ["components"],
            "properties": {
                "components": {"type": "object"},
                "layout": {"type": "object"},
            },
        },
        "dataSources": {"type": "array", "items": {"type": "object"}},
    },
}

EXECUTION_PLAN_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "execution-plan.schema.json",
    "title": "ExecutionPlan",
    "type": "object",
    "required": ["planVersion", "orderingRules", "screens"],
    "properties": {
        "planVersion": {"type": "string"},
        "orderingRules": {"type": "array", "items": {"type": "string"}},
        "screens": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["screenId", "route", "complexity", "phase", "dependencies"],
                "properties": {
                    "screenId": {"type": "string"},
                    "route": {"type": "string"},
                    "complexity": {"type": "string"},
                    "phase": {"type": "string"},
                    "priority": {"type": "integer"},
                    "dependencies": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
    },
}


__all__ = ["EXECUTION_PLAN_SCHEMA", "SCREEN_MANIFEST_SCHEMA"]
