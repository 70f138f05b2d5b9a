"""CLI entrypoints for docpipe build targets."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, List

from .config import CONFIG_FILENAME, load_config
from .errors import DocPipeError
from .logging import configure_logging, get_logger
from .orchestrator import JobResult, Orchestrator, RunReport


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    # Subcommands suppress the default so a global -v is not reset to False.
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Log debug detail such as registry retries and skipped archive entries.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docpipe",
        description="Generate the prebuilt page, sync external docs and flatten the docs corpus.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        default=".",
        help=f"Path to {CONFIG_FILENAME} or the docs root containing it (defaults to current directory).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write detailed logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    stats_parser = subparsers.add_parser(
        "stats",
        help="Refresh the download-stats store for every catalog package.",
    )
    _add_verbose_option(stats_parser, suppress_default=True)

    prebuilt_parser = subparsers.add_parser(
        "prebuilt",
        help="Fetch download stats and regenerate the prebuilt packages page.",
    )
    _add_verbose_option(prebuilt_parser, suppress_default=True)
    prebuilt_parser.add_argument(
        "--language",
        default=None,
        help="Ecosystem whose packages are listed (defaults to the configured language).",
    )

    sync_parser = subparsers.add_parser(
        "sync",
        help="Install the external docs subtree from its snapshot archive.",
    )
    _add_verbose_option(sync_parser, suppress_default=True)
    sync_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail when the snapshot contains no matching entries.",
    )

    build_parser = subparsers.add_parser(
        "build",
        help="Run the prebuilt page, docs sync and a strict site build.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    build_parser.add_argument(
        "--no-strict",
        dest="strict",
        action="store_false",
        help="Do not pass --strict to the site build.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the docs locally.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument(
        "--clean",
        action="store_true",
        help="Remove generated artifacts and serve a from-scratch strict rebuild.",
    )
    serve_parser.add_argument(
        "--open",
        dest="open_browser",
        action="store_true",
        help="Open the site in a browser once it is served.",
    )

    clean_parser = subparsers.add_parser(
        "clean",
        help="Remove copied notebooks, synced docs and the built site.",
    )
    _add_verbose_option(clean_parser, suppress_default=True)

    llms_parser = subparsers.add_parser(
        "llms-text",
        help="Flatten the docs tree into a single corpus file.",
    )
    _add_verbose_option(llms_parser, suppress_default=True)
    llms_parser.add_argument(
        "output",
        nargs="?",
        type=Path,
        default=None,
        help="Corpus path (defaults to the configured corpus output).",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for docpipe commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)
    logger = get_logger("cli")

    try:
        config = load_config(Path(args.config))
    except DocPipeError as exc:
        parser.exit(1, f"docpipe {args.command} failed: {exc}\n")

    orchestrator = Orchestrator(config)
    actions: dict[str, Callable[[], JobResult | RunReport | None]] = {
        "stats": orchestrator.run_stats,
        "prebuilt": lambda: orchestrator.run_prebuilt(language=args.language),
        "sync": lambda: orchestrator.run_sync(strict=bool(args.strict)),
        "build": lambda: orchestrator.run_build(strict=bool(args.strict)),
        "serve": lambda: orchestrator.serve(
            clean=bool(args.clean), open_browser=bool(args.open_browser)
        ),
        "clean": orchestrator.run_clean,
        "llms-text": lambda: orchestrator.run_llms_text(args.output),
    }

    try:
        outcome = actions[args.command]()
    except DocPipeError as exc:
        parser.exit(1, f"docpipe {args.command} failed: {exc}\n")
    except OSError as exc:
        parser.exit(1, f"docpipe {args.command} failed: {exc}\nRun with --verbose for more details.\n")
    except KeyboardInterrupt:  # pragma: no cover - interactive
        parser.exit(130, "Interrupted\n")

    if outcome is None:
        return
    report = outcome if isinstance(outcome, RunReport) else RunReport(jobs=[outcome])
    for job in report.jobs:
        logger.debug("Job %s finished: ok=%s skipped=%s", job.name, job.ok, job.skipped)
        if job.detail:
            print(f"{job.name}: {job.detail}")
    _print_warnings(report.warnings)
    if not report.ok:
        parser.exit(1, _failure_message(args.command, report.failures))


def _print_warnings(messages: List[str]) -> None:
    if not messages:
        return
    print(f"Completed with {len(messages)} warning(s):", file=sys.stderr)
    for message in messages:
        print(f"  - {message}", file=sys.stderr)


def _failure_message(command: str, failures: List[JobResult]) -> str:
    lines = [f"docpipe {command} failed:"]
    for job in failures:
        lines.append(f"  - {job.name}: {job.error or 'unknown error'}")
    return "\n".join(lines) + "\n"


if __name__ == "__main__":
    main(sys.argv[1:])
