#!/usr/bin/env python3
"""Command-line entry point: turn a package-set evaluation into an Obsidian vault.

Reads the JSON produced by evaluating the package set (for nixpkgs,
``nix-env -qa --json --meta --drv-path``), renders one note per package and
writes the vault directory.

Usage:
    # Full run, auto-detected worker count
    nixpkgs-vault --input packages.json

    # First 500 packages (identifier order) into a scratch vault, 4 workers
    nixpkgs-vault -i packages.json -o /tmp/vault -l 500 -j 4

    # Records on stdin, unresolved dependencies logged
    nix-env -qa --json --meta -f . | nixpkgs-vault -i - --debug
"""

import argparse
import logging
import sys
from pathlib import Path

from pkgvault import __version__
from pkgvault.config import DEFAULT_GIT_URL, DEFAULT_OUTDIR, DEFAULT_REVISION, load_config
from pkgvault.errors import ConfigError, FatalIngestionError
from pkgvault.logging import setup_logging
from pkgvault.orchestrator import VaultOrchestrator
from pkgvault.sources import JsonRecordSource
from pkgvault.storage.filesystem import FilesystemDocumentSink


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Options left unset default to None so values from the config file apply;
    the help text shows the built-in defaults.
    """
    parser = argparse.ArgumentParser(
        prog="nixpkgs-vault",
        description="Generate an Obsidian vault of cross-linked package notes from a package-set evaluation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output layout:
  <outdir>/packages/<identifier>.md   one note per package
  <outdir>/maintainers/<handle>.md    one index note per maintainer
  <outdir>/packages.json              normalized package dump
  <outdir>/statistics.json            aggregate counts
  <outdir>/Statistics.md              ranked statistics note

Exit status is 1 when the input cannot be read or configuration is invalid.
Per-package failures are summarized but do not change the exit status.
""",
    )
    parser.add_argument(
        "-i",
        "--input",
        type=str,
        required=True,
        help="JSON file with the evaluated package records ('-' reads stdin)",
    )
    parser.add_argument(
        "-o",
        "--outdir",
        type=Path,
        default=None,
        help=f"Output directory (default: {DEFAULT_OUTDIR})",
    )
    parser.add_argument(
        "-r",
        "--revision",
        type=str,
        default=None,
        help=f"Source revision the records were evaluated from (default: {DEFAULT_REVISION})",
    )
    parser.add_argument(
        "-g",
        "--git-url",
        type=str,
        default=None,
        help=f"Repository the records were evaluated from (default: {DEFAULT_GIT_URL})",
    )
    parser.add_argument(
        "-j",
        "--threads",
        type=int,
        default=None,
        help="Number of render worker threads, 0 for one per CPU (default: 0)",
    )
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=None,
        help="Render at most this many packages, 0 for all (default: 0)",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="TOML config file (default: $NIXVAULT_CONFIG, then ./nixvault.toml)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level and report every unresolved dependency",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the vault pipeline and return the process exit status."""
    args = parse_arguments(argv)
    logger = setup_logging(logging.DEBUG if args.debug else logging.INFO)

    try:
        config = load_config(args.config).with_overrides(
            outdir=args.outdir,
            revision=args.revision,
            git_url=args.git_url,
            threads=args.threads,
            limit=args.limit,
            diagnostics=True if args.debug else None,
        )
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        sep = "=" * 60
        print(sep, file=sys.stderr)
        print(f"Source:  {config.repository_url}/tree/{config.revision}", file=sys.stderr)
        print(f"Records: {JsonRecordSource(args.input).origin}", file=sys.stderr)
        print(f"Output:  {config.outdir}", file=sys.stderr)
        if config.limit:
            print(f"(Limited to {config.limit} packages)", file=sys.stderr)
        print(sep, file=sys.stderr)
    logger.debug(config)

    orchestrator = VaultOrchestrator(
        source=JsonRecordSource(args.input),
        sink=FilesystemDocumentSink(config.outdir),
        config=config,
        show_progress=not args.quiet,
    )
    try:
        result = orchestrator.run()
    except FatalIngestionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"Vault written to {config.outdir}", file=sys.stderr)
        print(f"  {result.summary()}", file=sys.stderr)
        stats = result.statistics
        print(
            f"  Packages: {stats.total_packages}  Maintainers: {stats.total_maintainers}  "
            f"Licenses: {stats.total_licenses}  Workers: {result.workers}",
            file=sys.stderr,
        )
    for failure in result.failures:
        logger.debug(failure)
    return 0


if __name__ == "__main__":
    sys.exit(main())
