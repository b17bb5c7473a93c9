# Copyright Red Hat
#
# debdiff/command.py - System diff command interface
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""The ``debdiff.command`` module provides both the debdiff command line
interface infrastructure, and a simple procedural interface to the
``debdiff`` library modules.

The procedural interface is used by the ``debdiff`` command line tool,
and may be used by application programs, or interactively in the
Python shell by users who do not require all the features present
in the debdiff object API.
"""
from argparse import ArgumentParser
from typing import Optional, TextIO
from os.path import basename
import logging
import sys

from debdiff import (
    DEBDIFF_DEBUG_IGNORE,
    DEBDIFF_DEBUG_INVENTORY,
    DEBDIFF_DEBUG_ENGINE,
    DEBDIFF_DEBUG_ALTERNATIVES,
    DEBDIFF_DEBUG_COMMAND,
    DEBDIFF_DEBUG_ALL,
    DEBDIFF_SUBSYSTEM_COMMAND,
    DEFAULT_OVERLAY,
    DEFAULT_ROOT,
    SubsystemFilter,
    set_debug_mask,
    __version__,
)
from .profiling import cpu_profile
from .sysdiff import DiffOptions, DiffResults, SysDiffer
from .sysdiff.options import HASH_ALGORITHMS

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_command(msg, *args, **kwargs):
    """A wrapper for command subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": DEBDIFF_SUBSYSTEM_COMMAND}, **kwargs)


_DEFAULT_LOG_LEVEL = logging.WARNING
_CONSOLE_HANDLER = None


def diff_system(options: DiffOptions) -> DiffResults:
    """
    Find files beneath the installation root that are owned by neither an
    installed package nor the overlay, and optionally overlay files whose
    installed content differs from the overlay copy.

    :param options: Options controlling the comparison.
    :type options: ``DiffOptions``
    :returns: The diff results.
    :rtype: ``DiffResults``
    """
    return SysDiffer(options).compare()


def print_results(
    results: DiffResults,
    json: bool = False,
    pretty: bool = False,
    out: Optional[TextIO] = None,
):
    """
    Write ``results`` to ``out`` (default ``sys.stdout``).

    The unpackaged paths are written one per line. If the divergent report
    was requested it follows after a blank line, and any content diffs
    follow that.

    :param results: The results to print.
    :type results: ``DiffResults``
    :param json: Print results as a JSON object.
    :type json: ``bool``
    :param pretty: Indent JSON output.
    :type pretty: ``bool``
    :param out: The stream to write to.
    :type out: ``Optional[TextIO]``
    """
    out = out or sys.stdout
    if json:
        print(results.json(pretty=pretty), file=out)
        return

    for path in results.paths():
        print(path, file=out)

    options = results.options
    if options.include_divergent:
        print(file=out)
        for path in results.divergent_paths():
            print(path, file=out)

    if options.include_content_diffs and results.content_diffs:
        print(file=out)
        print(results.diff(), end="", file=out)


def _diff_cmd(cmd_args):
    """
    System diff command handler.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    if cmd_args.pretty and not cmd_args.json:
        _log_error("Option --pretty only supported with --json")
        return 1

    if cmd_args.include_content_diffs:
        cmd_args.include_divergent = True

    options = DiffOptions.from_cmd_args(cmd_args)

    with cpu_profile(cmd_args.cpuprofile):
        results = diff_system(options)

    print_results(results, json=cmd_args.json, pretty=cmd_args.pretty)
    return 0


def setup_logging(cmd_args):
    """
    Set up debdiff logging.
    """
    # pylint: disable=global-statement
    global _CONSOLE_HANDLER
    level = _DEFAULT_LOG_LEVEL
    if cmd_args.verbose and cmd_args.verbose > 1:
        level = logging.DEBUG
    elif cmd_args.verbose and cmd_args.verbose > 0:
        level = logging.INFO

    debdiff_log = logging.getLogger("debdiff")
    formatter = logging.Formatter("%(levelname)s - %(message)s")
    debdiff_log.setLevel(level)
    if debdiff_log.hasHandlers():
        debdiff_log.handlers.clear()

    # Subsystem log filtering
    _debdiff_subsystem_filter = SubsystemFilter("debdiff")

    _CONSOLE_HANDLER = logging.StreamHandler(sys.stderr)
    _CONSOLE_HANDLER.setLevel(level)
    _CONSOLE_HANDLER.setFormatter(formatter)
    _CONSOLE_HANDLER.addFilter(_debdiff_subsystem_filter)

    debdiff_log.addHandler(_CONSOLE_HANDLER)


def shutdown_logging():
    """
    Shut down debdiff logging.
    """
    logging.shutdown()


def set_debug(debug_arg):
    """
    Set debugging mask from command line argument.
    """
    if not debug_arg:
        return

    mask_map = {
        "ignore": DEBDIFF_DEBUG_IGNORE,
        "inventory": DEBDIFF_DEBUG_INVENTORY,
        "engine": DEBDIFF_DEBUG_ENGINE,
        "alternatives": DEBDIFF_DEBUG_ALTERNATIVES,
        "command": DEBDIFF_DEBUG_COMMAND,
        "all": DEBDIFF_DEBUG_ALL,
    }

    mask = 0
    for name in debug_arg.split(","):
        if name not in mask_map:
            raise ValueError(f"Unknown debug option: {name}")
        mask |= mask_map[name]
    set_debug_mask(mask)


def _add_diff_args(parser):
    parser.add_argument(
        "--silent",
        action="store_true",
        help="Do not report files skipped due to permission errors",
    )
    parser.add_argument(
        "--root",
        type=str,
        metavar="PATH",
        default=DEFAULT_ROOT,
        help=f"Installation root (default: {DEFAULT_ROOT})",
    )
    parser.add_argument(
        "--repo",
        "--overlay",
        type=str,
        metavar="PATH",
        dest="overlay",
        default=DEFAULT_OVERLAY,
        help=f"Overlay (repo) directory (default: {DEFAULT_OVERLAY})",
    )
    parser.add_argument(
        "--ignore",
        type=str,
        metavar="PATH",
        dest="ignore_dir",
        default="",
        help="Directory of ignore files",
    )
    parser.add_argument(
        "--cpuprofile",
        type=str,
        metavar="FILE",
        default="",
        help="Write a CPU profile to FILE",
    )
    parser.add_argument(
        "-H",
        "--hash",
        type=str,
        dest="hash_algorithm",
        choices=HASH_ALGORITHMS,
        default="sha256",
        help="Content hash algorithm for overlay comparisons (default: sha256)",
    )
    parser.add_argument(
        "-a",
        "--alternatives",
        dest="include_alternatives",
        action="store_true",
        help="Treat links managed by update-alternatives as package owned",
    )
    parser.add_argument(
        "-D",
        "--divergent",
        dest="include_divergent",
        action="store_true",
        help="Also report overlay files whose installed content differs",
    )
    parser.add_argument(
        "-c",
        "--content-diff",
        dest="include_content_diffs",
        action="store_true",
        help="Show content diffs for divergent files (implies --divergent)",
    )
    parser.add_argument(
        "-f",
        "--file-types",
        dest="use_magic_file_type",
        action="store_true",
        help="Detect file types for content diffs using libmagic",
    )
    parser.add_argument(
        "-z",
        "--max-diff-size",
        type=int,
        dest="max_content_diff_size",
        default=2**20,
        help="Maximum file size for generating content diffs (default: 1MiB)",
    )
    parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        help="Output results as JSON",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Indent JSON output",
    )


def main(args):
    """
    Main entry point for debdiff.
    """
    parser = ArgumentParser(
        description="Report files not owned by installed packages or the overlay",
        prog=basename(args[0]),
    )

    # Global arguments
    parser.add_argument(
        "-d",
        "--debug",
        metavar="DEBUGOPTS",
        type=str,
        help="A list of debug options to enable",
    )
    parser.add_argument("-v", "--verbose", help="Enable verbose output", action="count")
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        help="Report the version number of debdiff",
        version=__version__,
    )
    _add_diff_args(parser)

    cmd_args = parser.parse_args(args[1:])

    status = 1

    try:
        set_debug(cmd_args.debug)
    except ValueError as err:
        print(err)
        parser.print_help()
        return status

    setup_logging(cmd_args)

    _log_debug_command("Parsed %s", " ".join(args[1:]))

    if cmd_args.debug:
        status = _diff_cmd(cmd_args)
    else:
        try:
            status = _diff_cmd(cmd_args)
        # pylint: disable=broad-except
        except KeyboardInterrupt:  # pragma: no cover
            _log_info("Exiting on user cancel")
        except Exception as err:
            _log_error("Command failed: %s", err)

    shutdown_logging()
    return status


def run():
    """
    Console script entry point.
    """
    sys.exit(main(sys.argv))


# vim: set et ts=4 sw=4 :
