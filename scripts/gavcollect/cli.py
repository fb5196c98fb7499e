"""CLI entry point.

Wires settings, resolution and output rendering together::

    gavcollect resolve path/to/pom.xml [more poms or project dirs]
    gavcollect scan ~/.m2/repository/com/acme --format csv -o artifacts.csv
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .artifacts import render_json, render_text, to_dependency_infos, write_csv, DependencyInfo
from .batch_scanner import BatchDirectoryScanner
from .config import get_settings
from .context import ResolutionContext
from .errors import RepositoryUnavailable
from .resolver import GraphResolver

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list; ``sys.argv[1:]`` when ``None``.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--repo", "-r", type=Path, default=None,
                        help="Local repository root (default: $MAVEN_REPO_LOCAL or ~/.m2/repository)")
    common.add_argument("--format", "-f", choices=["text", "json", "csv"], default="text",
                        help="Output format (default: text)")
    common.add_argument("--output", "-o", type=Path, default=None,
                        help="Write output to this file instead of stdout")
    common.add_argument("--verbose", "-v", action="store_true", help="Log every skipped item")

    parser = argparse.ArgumentParser(
        prog="gavcollect",
        description="Collect every artifact coordinate a Maven project needs from the local repository",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", parents=[common],
                                  help="Resolve project descriptors and everything they reference")
    resolve.add_argument("poms", nargs="+", type=Path, help="pom.xml files or project directories")

    scan = commands.add_parser("scan", parents=[common],
                               help="Scan directories for descriptors and binaries")
    scan.add_argument("dirs", nargs="+", type=Path,
                      help="Directories to scan (relative paths are taken from the repository root)")
    scan.add_argument("--no-expand-versions", dest="expand_versions", action="store_false",
                      help="Do not resolve other cached versions of the artifacts found")
    return parser.parse_args(argv)


def _root_descriptor(path: Path) -> Path:
    return path / "pom.xml" if path.is_dir() else path


def _configure_logging(verbose: bool, default_level: str) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else default_level,
                        format="[%(levelname)s] %(message)s")


def _write_output(infos: List[DependencyInfo], fmt: str, output: Optional[Path]) -> None:
    if output is None:
        _render(infos, fmt, sys.stdout)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8", newline="") as f:
        _render(infos, fmt, f)
    logger.info("Wrote %s", output)


def _render(infos: List[DependencyInfo], fmt: str, stream) -> None:
    if fmt == "csv":
        write_csv(infos, stream)
    elif fmt == "json":
        stream.write(render_json(infos))
    else:
        stream.write(render_text(infos))


def run(args: argparse.Namespace) -> int:
    """Execute a parsed command.

    Returns:
        Process exit code: 0 on success, 1 when there is nothing to resolve
        or the repository is unusable, 130 when interrupted. An interrupted
        run still writes what it collected.
    """
    settings = get_settings()
    _configure_logging(args.verbose, settings.log_level.value)
    repo_root = args.repo.expanduser().absolute() if args.repo else settings.repository_root
    context = ResolutionContext.for_repository(repo_root)
    resolver = GraphResolver(context.locator, transitive_scopes=settings.transitive_scopes,
                             max_passes=settings.max_property_passes)
    logger.info("Using local repository %s", repo_root)

    exit_code = 0
    try:
        if args.command == "resolve":
            roots = []
            for path in args.poms:
                pom = _root_descriptor(path)
                if pom.is_file():
                    roots.append(pom)
                else:
                    logger.error("No pom.xml found at %s", pom)
            if not roots:
                return 1
            resolver.resolve_all(roots, context)
        else:
            scanner = BatchDirectoryScanner(context.locator, resolver, settings.skip_dirs)
            scanner.resolve(args.dirs, context, expand_versions=args.expand_versions)
    except RepositoryUnavailable as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        context.progress.cancel()
        logger.warning("Interrupted, keeping the %d coordinate(s) collected so far", len(context.collector))
        exit_code = EXIT_INTERRUPTED

    infos = to_dependency_infos(context.collector, context.locator)
    _write_output(infos, args.format, args.output)
    for diagnostic in context.diagnostics:
        logger.debug("Skipped %s", diagnostic)
    missing = sum(1 for i in infos if not i.exists_locally)
    logger.info("Discovered %d artifact(s) (%d missing locally), skipped %d item(s)",
                len(infos), missing, len(context.diagnostics))
    return exit_code


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point. Parses arguments and delegates to ``run()``."""
    sys.exit(run(parse_args(argv)))
