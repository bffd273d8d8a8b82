"""CLI entrypoints for depscan commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .analyzers import default_registry
from .api.client import APIClient
from .config import ConfigError, DepscanConfig, load_config, parse_module_spec
from .errors import AnalysisError, MissingAPIKeyError, TemplateError, UploadError
from .logging import configure_logging, get_logger
from .models import Module
from .normalize import normalize
from .orchestrator import Orchestrator
from .output import render_json, render_template
from .progress import TerminalProgress

EXIT_FAILURE = 1
EXIT_UPLOAD_FAILURE = 3

logger = get_logger("cli")


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


def _add_project_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("project metadata")
    group.add_argument("--endpoint", help="Base URL of the report service.")
    group.add_argument("--fetcher", help="Fetcher for the project locator (default: custom).")
    group.add_argument("--project", help="Project name used in the project locator.")
    group.add_argument("--revision", help="Revision used in the project locator.")
    group.add_argument("--title", help="Title shown for custom projects.")
    group.add_argument("--branch", help="Branch the analysis belongs to.")
    group.add_argument("--project-url", dest="project_url", help="Link to the project's homepage.")
    group.add_argument(
        "--jira-project-key", dest="jira_project_key", help="Issue tracker project key."
    )
    group.add_argument("--link", help="External link attached to the build.")
    group.add_argument("--team", help="Team that owns the project.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="depscan",
        description="Analyze module dependencies and upload a normalized graph.",
    )
    _add_verbose_option(parser)
    parser.add_argument("--log-file", dest="log_file", help="Also write detailed logs to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze built dependencies.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument(
        "modules",
        nargs="*",
        metavar="MODULE",
        help="Modules to analyze as TYPE:TARGET (defaults to the modules in .depscan.yml).",
    )
    analyze_parser.add_argument(
        "-o",
        "--output",
        "--show-output",
        dest="output",
        action="store_true",
        help="Print results to stdout instead of uploading them.",
    )
    analyze_parser.add_argument(
        "--template",
        help="Render output through a Jinja template file (implies --output).",
    )
    analyze_parser.add_argument(
        "-c",
        "--config",
        default=".",
        help="Path to .depscan.yml or its directory (defaults to current directory).",
    )
    analyze_parser.add_argument(
        "--concurrency",
        type=int,
        help="Number of modules analyzed in parallel.",
    )
    _add_project_options(analyze_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for depscan commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    if args.command == "analyze":
        run_analyze(args, parser)
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(EXIT_FAILURE, "Unknown command\n")


def run_analyze(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    """Analyze modules, then print or upload the normalized result."""
    try:
        config = load_config(Path(args.config))
        _apply_overrides(config, args)
        modules = _collect_modules(config, args.modules)
    except ConfigError as exc:
        parser.exit(EXIT_FAILURE, f"Could not load configuration: {exc}\n")

    show_output = bool(args.output or args.template)
    client: Optional[APIClient] = None
    if not show_output or config.api_key:
        try:
            client = APIClient.from_config(config)
        except MissingAPIKeyError as exc:
            parser.exit(EXIT_FAILURE, f"{exc}\n{exc.troubleshooting or ''}")

    if not modules:
        parser.exit(EXIT_FAILURE, "No modules specified.\n")

    progress = TerminalProgress()
    orchestrator = Orchestrator(
        registry=default_registry(),
        uploader=client,
        progress=progress,
        concurrency=config.analyze.concurrency,
    )
    try:
        analyzed = orchestrator.analyze(modules)
        units = normalize(analyzed)
    except AnalysisError as exc:
        parser.exit(EXIT_FAILURE, f"Could not analyze: {exc}\n")
    logger.debug("Normalized %d source unit(s)", len(units))

    if show_output:
        template = Path(args.template) if args.template else config.analyze.template
        try:
            output = render_template(template, units) if template else render_json(units)
        except TemplateError as exc:
            parser.exit(EXIT_FAILURE, f"Could not render output: {exc}\n")
        print(output)
        return

    if client is None:  # pragma: no cover - guarded by the API key check above
        parser.exit(EXIT_FAILURE, "No upload client configured.\n")
    progress.status("Uploading analysis...")
    try:
        locator = client.upload(
            config.project.title or config.project.name or "",
            config.project.locator(),
            config.project.upload_options(),
            units,
        )
    except UploadError as exc:
        parser.exit(EXIT_UPLOAD_FAILURE, f"Error during upload: {exc}\n")
    finally:
        progress.clear()
    print(client.report_url(locator, config.project.branch))


def _apply_overrides(config: DepscanConfig, args: argparse.Namespace) -> None:
    project = config.project
    for attribute in (
        "fetcher",
        "revision",
        "title",
        "branch",
        "project_url",
        "jira_project_key",
        "link",
        "team",
    ):
        value = getattr(args, attribute, None)
        if value:
            setattr(project, attribute, value)
    if args.project:
        project.name = args.project
    if args.endpoint:
        config.endpoint = args.endpoint
    if args.concurrency is not None:
        if args.concurrency < 1:
            raise ConfigError("--concurrency must be at least 1")
        config.analyze.concurrency = args.concurrency


def _collect_modules(config: DepscanConfig, specs: List[str]) -> List[Module]:
    if specs:
        return [parse_module_spec(spec) for spec in specs]
    return list(config.modules)


if __name__ == "__main__":
    main(sys.argv[1:])
