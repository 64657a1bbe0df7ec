# SPDX-License-Identifier: MIT
"""Command-line interface for bcons."""

from __future__ import annotations

import argparse
import logging
import shlex
import sys
from pathlib import Path

from bcons import __version__, env_vars
from bcons.core.cleanup import CleanupTracker
from bcons.core.description import DEFAULT_DESCRIPTION_NAME
from bcons.core.errors import BconsError
from bcons.core.project import Project
from bcons.generators.compile_commands import CompileCommandsGenerator
from bcons.generators.mermaid import MermaidGenerator
from bcons.generators.ninja import NinjaGenerator
from bcons.generators.xcode import XcodeGenerator

# Set up logging
logger = logging.getLogger("bcons")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def parse_variables(args: list[str]) -> tuple[dict[str, str], list[str]]:
    """Parse KEY=value arguments from a list.

    Args:
        args: List of arguments.

    Returns:
        Tuple of (variables dict, remaining args).
    """
    variables: dict[str, str] = {}
    remaining: list[str] = []

    for arg in args:
        if "=" in arg and not arg.startswith("-"):
            key, _, value = arg.partition("=")
            if key:  # Valid KEY=value
                variables[key] = value
            else:
                remaining.append(arg)
        else:
            remaining.append(arg)

    return variables, remaining


def regen_command(argv: list[str], cwd: Path | None = None) -> str:
    """Shell command that re-runs bcons with the same arguments."""
    cwd = cwd or Path.cwd()
    command = shlex.join([sys.executable, "-m", "bcons.cli", *argv])
    return f"cd {shlex.quote(str(cwd))} && {command}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bcons",
        description="Generate a Ninja file from target descriptions.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    parser.add_argument(
        "-B", "--build-dir", default="build", help="Build directory (default: build)"
    )
    parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Ninja file to write (default: <build-dir>/build.ninja)",
    )
    parser.add_argument(
        "-D",
        dest="defines",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set a build variable",
    )
    parser.add_argument(
        "--compdb",
        action="store_true",
        help="Also write compile_commands.json to the build directory",
    )
    parser.add_argument(
        "--mermaid", metavar="PATH", help="Also write a Mermaid dependency diagram"
    )
    parser.add_argument(
        "--xcode", metavar="DIR", help="Also write an Xcode project into DIR"
    )
    parser.add_argument(
        "description",
        nargs="?",
        default=DEFAULT_DESCRIPTION_NAME,
        help=f"Root description file or directory (default: {DEFAULT_DESCRIPTION_NAME})",
    )
    parser.add_argument(
        "extra",
        nargs="*",
        help="Build variables (NAME=VALUE)",
    )
    return parser


def generate(args: argparse.Namespace, argv: list[str]) -> int:
    """Run one generation: load, assemble, write, clean up."""
    define_vars, bad = parse_variables(args.defines)
    if bad:
        logger.error("-D expects NAME=VALUE, got: %s", " ".join(bad))
        return 1
    extra = list(args.extra)
    if "=" in args.description and not Path(args.description).exists():
        # Only variables were given
        extra.insert(0, args.description)
        args.description = DEFAULT_DESCRIPTION_NAME
    extra_vars, remaining = parse_variables(extra)
    if remaining:
        logger.error("unexpected arguments: %s", " ".join(remaining))
        return 1

    variables = env_vars()
    variables.update(define_vars)
    variables.update(extra_vars)

    description = Path(args.description)
    if not description.exists():
        logger.error("Target description not found: %s", description)
        return 1
    root_dir = description if description.is_dir() else description.parent

    build_dir = Path(args.build_dir)
    output = Path(args.output) if args.output else build_dir / "build.ninja"

    tracker = CleanupTracker(output, build_dir)
    tracker.begin()

    project = Project(root_dir=root_dir, build_dir=build_dir, variables=variables)
    project.load(description)
    project.generate()

    generator = NinjaGenerator(
        output_filename=output.name, regen_command=regen_command(argv)
    )
    generator.generate(project, output.parent)

    removed = tracker.finish()
    if removed:
        logger.info("removed %d stale outputs", len(removed))

    if args.compdb:
        CompileCommandsGenerator().generate(project, project.build_dir)
    if args.mermaid:
        mermaid = Path(args.mermaid)
        MermaidGenerator(output_filename=mermaid.name).generate(project, mermaid.parent)
    if args.xcode:
        XcodeGenerator().generate(project, Path(args.xcode))

    logger.info("Generated %s", output)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the bcons CLI."""
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)
    setup_logging(args.verbose, args.debug)

    try:
        return generate(args, argv)
    except BconsError as e:
        logger.error("%s", e)
        return 1
    except OSError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
