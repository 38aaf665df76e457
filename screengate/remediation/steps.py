"""Command-driven and interactive collaborators for the remediation loop."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Sequence, TextIO

from ..logging import get_logger
from ..models import ScreenManifest
from ..scoring.evidence import EvidenceLoader, ScreenEvidence
from .controller import FailureReport

CommandRunner = Callable[..., None]

logger = get_logger("remediation.steps")


class FixStepError(RuntimeError):
    """Raised when the external fixer cannot complete its step."""


def run_command(command: str, *, cwd: Path, env: Optional[Mapping[str, str]] = None) -> None:
    """Run a shell command to completion, raising on a non-zero exit."""
    merged = os.environ.copy()
    if env:
        merged.update(env)
    try:
        subprocess.run(command, shell=True, cwd=str(cwd), env=merged, check=True)
    except subprocess.CalledProcessError as exc:
        raise FixStepError(f"Command failed with exit code {exc.returncode}: {command}") from exc


class CommandFixStep:
    """Hands the failure report to a shell command and blocks until it exits.

    The command sees ``SCREENGATE_CYCLE`` and, when a request file is
    configured, ``SCREENGATE_REMEDIATION_REQUEST`` pointing at it.
    """

    def __init__(
        self,
        command: str,
        *,
        cwd: Path,
        request_path: Path | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.command = command
        self.cwd = Path(cwd)
        self.request_path = request_path
        self._runner = runner or run_command

    def apply(self, report: FailureReport) -> None:
        env: Dict[str, str] = {"SCREENGATE_CYCLE": str(report.cycle)}
        if self.request_path is not None:
            env["SCREENGATE_REMEDIATION_REQUEST"] = str(self.request_path)
        logger.info("Running fix command for cycle %d: %s", report.cycle, self.command)
        self._runner(self.command, cwd=self.cwd, env=env)


class PromptFixStep:
    """Human checkpoint: prints the failing screens and waits for Enter."""

    def __init__(self, *, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stderr

    def apply(self, report: FailureReport) -> None:
        self.stdout.write(f"Cycle {report.cycle} was not accepted. Screens needing fixes:\n")
        for screen in report.screens:
            dims = ", ".join(screen.failed + screen.needs_review) or "overall"
            self.stdout.write(f"  - {screen.screen_id} [{screen.overall.value}] {dims}\n")
        self.stdout.write("Apply fixes, re-run capture if needed, then press Enter to continue...\n")
        self.stdout.flush()
        if not self.stdin.readline():
            raise FixStepError("Input closed before the fix checkpoint was confirmed")


class DirectoryEvidenceSource:
    """Re-reads the evidence directory each cycle, optionally capturing first."""

    def __init__(
        self,
        directory: Path,
        manifests: Sequence[ScreenManifest],
        *,
        capture_command: str | None = None,
        cwd: Path | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.loader = EvidenceLoader(directory)
        self.manifests = list(manifests)
        self.capture_command = capture_command
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self._runner = runner or run_command

    def collect(self, cycle: int) -> Dict[str, ScreenEvidence]:
        if self.capture_command:
            logger.info("Running capture command for cycle %d: %s", cycle, self.capture_command)
            self._runner(self.capture_command, cwd=self.cwd, env={"SCREENGATE_CYCLE": str(cycle)})
        return self.loader.load(self.manifests)


__all__ = [
    "CommandFixStep",
    "DirectoryEvidenceSource",
    "FixStepError",
    "PromptFixStep",
    "run_command",
]
