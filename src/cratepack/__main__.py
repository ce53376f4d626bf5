"""CLI entry point: run `cratepack bundle <id>` or `python -m cratepack bundle <id>`."""

import logging
import sys
from pathlib import Path


def main(argv=None) -> int:
    import argparse
    from .compiler.driver import BundleDriver
    from .utils.config import BundlerConfig

    parser = argparse.ArgumentParser(prog="cratepack", description="Bundle a Rust crate into a single source file.")
    subcommands = parser.add_subparsers(dest="command", required=True)

    bundle = subcommands.add_parser("bundle", help="Bundle src/bin/<id>.rs with the library modules it uses")
    bundle.add_argument("problem_id", help="Entry unit id (src/bin/<id>.rs)")
    bundle.add_argument("--root", type=Path, default=None, help="Crate root (default: current directory)")
    bundle.add_argument("--alias", default=None, help="Library name used by the entry unit")
    fmt = bundle.add_mutually_exclusive_group()
    fmt.add_argument("--format", dest="format_output", action="store_true", default=None,
                     help="Run the external formatter on the output")
    fmt.add_argument("--no-format", dest="format_output", action="store_false",
                     help="Do not run the external formatter")
    bundle.set_defaults(format_output=None)
    bundle.add_argument("--no-follow", action="store_true",
                        help="Do not follow imports between library modules")
    verbosity = bundle.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug output")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Warnings and errors only")
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)

    root = args.root.resolve() if args.root is not None else None
    if root is not None and not root.is_dir():
        sys.stderr.write(f"cratepack: error: not a directory: {root}\n")
        return 1

    config = BundlerConfig.from_env(root)
    if args.alias:
        config.alias = args.alias
    if args.format_output is not None:
        config.format_output = args.format_output
    if args.no_follow:
        config.follow_library_imports = False

    result = BundleDriver(config).bundle(args.problem_id)
    if result.reporter.has_errors() or result.reporter.warnings:
        sys.stderr.write(result.reporter.format_all(prefix="cratepack: ") + "\n")
    if not result.success:
        return 1
    if result.has_warnings:
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
