"""CLI entrypoints for screengate commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError
from .logging import configure_logging
from .orchestrator import BatchRejectedError, Orchestrator, PlanError
from .remediation.controller import ControllerState


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project root containing .screengate.yml (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screengate",
        description="Plan, score and remediate a batch of migrated screens.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate-manifests",
        help="Validate screen manifests and the stored execution plan.",
    )
    _add_verbose_option(validate_parser, suppress_default=True)
    _add_path_argument(validate_parser)

    build_parser = subparsers.add_parser(
        "build-plan",
        help="Build the deterministic execution plan from the manifests.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_path_argument(build_parser)
    build_parser.add_argument(
        "--force",
        action="store_true",
        help="Rebuild even when an execution plan already exists.",
    )

    plan_parser = subparsers.add_parser(
        "validate-plan",
        help="Re-validate the stored execution plan against the manifests.",
    )
    _add_verbose_option(plan_parser, suppress_default=True)
    _add_path_argument(plan_parser)

    score_parser = subparsers.add_parser(
        "score",
        help="Score the current evidence once and write scorecards.",
    )
    _add_verbose_option(score_parser, suppress_default=True)
    _add_path_argument(score_parser)

    remediate_parser = subparsers.add_parser(
        "remediate",
        help="Run the bounded score/fix loop until accepted or exhausted.",
    )
    _add_verbose_option(remediate_parser, suppress_default=True)
    _add_path_argument(remediate_parser)
    remediate_parser.add_argument(
        "--fix-command",
        default=None,
        help="Shell command run between cycles (overrides commands.fix).",
    )
    remediate_parser.add_argument(
        "--capture-command",
        default=None,
        help="Shell command run before each cycle to refresh evidence (overrides commands.capture).",
    )
    remediate_parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Do not wait for Enter between cycles when no fix command is configured.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for screengate commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    orchestrator = Orchestrator()
    try:
        _dispatch(parser, orchestrator, args)
    except (BatchRejectedError, PlanError, FileNotFoundError) as exc:
        parser.exit(1, f"{exc}\n")
    except ConfigError as exc:
        parser.exit(1, f"Configuration error: {exc}\n")
    except RuntimeError as exc:
        parser.exit(1, f"screengate {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _dispatch(parser: argparse.ArgumentParser, orchestrator: Orchestrator, args: argparse.Namespace) -> None:
    if args.command == "validate-manifests":
        outcome = orchestrator.run_validate_manifests(args.path)
        loaded = outcome.loaded
        print(
            f"Validated {loaded.total_records} manifest(s): "
            f"{len(loaded.errors)} error(s), {len(loaded.warnings)} warning(s)"
        )
        print(f"Report written to {_relativize(outcome.report_path)}")
        if not outcome.ok:
            parser.exit(1, "Manifest validation failed\n")
    elif args.command == "build-plan":
        result = orchestrator.run_build_plan(args.path, force=bool(args.force))
        if result.errors:
            parser.exit(1, "".join(f"{error.message}\n" for error in result.errors))
        if result.created:
            print(f"Execution plan written to {_relativize(result.path)}")
        else:
            print(f"Execution plan already exists at {_relativize(result.path)}; use --force to rebuild")
        if result.validation is not None and not result.validation.valid:
            parser.exit(1, "".join(f"{error.message}\n" for error in result.validation.errors))
    elif args.command == "validate-plan":
        checked = orchestrator.run_validate_plan(args.path)
        if not checked.ok:
            errors = checked.errors or (checked.validation.errors if checked.validation else [])
            parser.exit(1, "".join(f"{error.message}\n" for error in errors))
        print(f"Execution plan valid; report written to {_relativize(checked.report_path)}")
    elif args.command == "score":
        scored = orchestrator.run_score(args.path)
        summary = scored.summary
        print(
            f"{summary.total} screen(s): {summary.passed} pass, {summary.needs_review} needs review, "
            f"{summary.failed} fail, {summary.critical_failures} critical"
        )
        print(f"Decision: {summary.decision.value if summary.decision else 'n/a'}")
    elif args.command == "remediate":
        outcome = orchestrator.run_remediate(
            args.path,
            fix_command=args.fix_command,
            capture_command=args.capture_command,
            prompt=not bool(args.no_prompt),
        )
        print(f"Remediation finished after {len(outcome.cycles)} cycle(s): {outcome.state.value}")
        if outcome.state is ControllerState.EXHAUSTED:
            parser.exit(
                1,
                f"Max cycles reached; {len(outcome.exceptions_queue)} screen(s) moved to the exceptions queue\n",
            )
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
