"""Remediation loop: acceptance policy, controller and its collaborators."""

from .controller import (
    ControllerState,
    CycleRecord,
    EvidenceSource,
    FailureReport,
    FixStep,
    RemediationController,
    RemediationOutcome,
    ScreenFailure,
)
from .policy import evaluate_policy
from .steps import CommandFixStep, DirectoryEvidenceSource, FixStepError, PromptFixStep

__all__ = [
    "CommandFixStep",
    "ControllerState",
    "CycleRecord",
    "DirectoryEvidenceSource",
    "EvidenceSource",
    "FailureReport",
    "FixStep",
    "FixStepError",
    "PromptFixStep",
    "RemediationController",
    "RemediationOutcome",
    "ScreenFailure",
    "evaluate_policy",
]
