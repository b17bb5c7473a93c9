# Copyright Red Hat
#
# debdiff/alternatives.py - Debian alternatives system queries
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Query interface to the Debian alternatives system.

Wraps ``update-alternatives --get-selections`` and
``update-alternatives --query NAME`` and parses their output.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import subprocess
import logging
import os

from debdiff import (
    DEBDIFF_SUBSYSTEM_ALTERNATIVES,
    DebdiffCalloutError,
    DebdiffParseError,
)

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_alternatives(msg, *args, **kwargs):
    """A wrapper for alternatives subsystem debug logs."""
    _log.debug(
        msg, *args, extra={"subsystem": DEBDIFF_SUBSYSTEM_ALTERNATIVES}, **kwargs
    )


UPDATE_ALTERNATIVES_CMD = "update-alternatives"

#: Directory holding the alternatives symbolic links.
ALTERNATIVES_DIR = "/etc/alternatives"

#: Administrative directory of the alternatives system.
ALTERNATIVES_ADMIN_DIR = "/var/lib/dpkg/alternatives"

_SLAVES = "Slaves:"

#: Query header keys mapped to ``AlternativesQuery`` attribute names.
_HEADER_KEYS = {
    "Name": "name",
    "Link": "link",
    "Status": "status",
    "Best": "best",
    "Value": "value",
}

#: Alternative block keys mapped to ``Alternative`` attribute names.
_ALTERNATIVE_KEYS = {
    "Alternative": "alternative",
    "Priority": "priority",
}


@dataclass
class Alternative:
    """
    One candidate in an alternatives group.
    """

    #: Path of the alternative
    alternative: str = ""
    #: Priority of the alternative
    priority: str = ""
    #: Map of slave names to slave targets
    slaves: Dict[str, str] = field(default_factory=dict)


@dataclass
class AlternativesQuery:
    """
    Information about a named alternatives group, as reported by
    ``update-alternatives --query``.
    """

    #: Master alternative name
    name: str = ""
    #: Master link path
    link: str = ""
    #: Map of slave names to slave link paths
    slaves: Dict[str, str] = field(default_factory=dict)
    #: Group status ("auto" or "manual")
    status: str = ""
    #: Best alternative for the group
    best: str = ""
    #: Currently selected alternative
    value: str = ""
    #: Candidate alternatives
    alternatives: List[Alternative] = field(default_factory=list)


def _alternatives_args(root: Optional[str]) -> List[str]:
    """
    Return ``update-alternatives`` options selecting the alternatives and
    administrative directories beneath ``root``.

    :param root: An alternate installation root, or ``None`` for the
                 running system.
    :type root: ``Optional[str]``
    :rtype: ``List[str]``
    """
    if not root:
        return []
    return [
        "--altdir",
        os.path.join(root, ALTERNATIVES_DIR.lstrip(os.sep)),
        "--admindir",
        os.path.join(root, ALTERNATIVES_ADMIN_DIR.lstrip(os.sep)),
    ]


def _run_update_alternatives(args: List[str], what: str) -> str:
    """
    Run ``update-alternatives`` with ``args`` and return its output.

    :param args: Arguments to pass to the command.
    :type args: ``List[str]``
    :param what: A description of the operation for error messages.
    :type what: ``str``
    :returns: The command output decoded as text.
    :rtype: ``str``
    :raises: ``DebdiffCalloutError`` if the command is missing or fails.
    """
    env = dict(os.environ, LC_ALL="C", LANG="C")
    command = [UPDATE_ALTERNATIVES_CMD] + args
    _log_debug_alternatives("Calling: '%s'", " ".join(command))
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            check=True,
            env=env,
        )
    except FileNotFoundError as err:
        raise DebdiffCalloutError(
            f"error {what}: {UPDATE_ALTERNATIVES_CMD} command not found"
        ) from err
    except subprocess.CalledProcessError as err:
        _log_debug_alternatives("Stderr: %s", (err.stderr or "").strip())
        raise DebdiffCalloutError(
            f"error {what}: {UPDATE_ALTERNATIVES_CMD} exited with status "
            f"{err.returncode}: {(err.stderr or '').strip()}"
        ) from err
    return result.stdout


def parse_selections(output: str) -> List[str]:
    """
    Parse ``update-alternatives --get-selections`` output into a list of
    master alternative names.

    :param output: The command output.
    :type output: ``str``
    :returns: The alternative names, in output order.
    :rtype: ``List[str]``
    """
    return [line.split()[0] for line in output.strip().splitlines() if line.strip()]


def get_selections(root: Optional[str] = None) -> List[str]:
    """
    List master alternative names.

    :param root: An alternate installation root, or ``None`` for the
                 running system.
    :type root: ``Optional[str]``
    :returns: The alternative names.
    :rtype: ``List[str]``
    :raises: ``DebdiffCalloutError`` if ``update-alternatives`` fails.
    """
    output = _run_update_alternatives(
        _alternatives_args(root) + ["--get-selections"], "getting selections"
    )
    return parse_selections(output)


def _parse_slaves(lines: List[str], start: int, target: Dict[str, str]) -> int:
    """
    Parse the indented slave lines that follow a ``Slaves:`` line.

    :param lines: The lines of the block being parsed.
    :param start: Index of the first line after ``Slaves:``.
    :param target: Dictionary to store slave names and values into.
    :returns: Index of the first line that is not a slave line.
    :rtype: ``int``
    """
    i = start
    while i < len(lines) and lines[i].startswith(" "):
        slave = lines[i][1:].split(" ", 1)
        if len(slave) != 2:
            raise DebdiffParseError(f"error parsing slave line: '{lines[i]}'")
        target[slave[0]] = slave[1]
        i += 1
    return i


def _parse_block(lines: List[str], obj, keys: Dict[str, str], what: str):
    """
    Parse one blank-line delimited block of ``key: value`` lines into the
    attributes of ``obj``.
    """
    i = 0
    while i < len(lines):
        line = lines[i]
        if line == _SLAVES:
            i = _parse_slaves(lines, i + 1, obj.slaves)
            continue
        key, sep, value = line.partition(": ")
        if not sep or key not in keys:
            raise DebdiffParseError(f"error parsing {what}: '{line}'")
        setattr(obj, keys[key], value)
        i += 1


def parse_query(output: str) -> AlternativesQuery:
    """
    Parse ``update-alternatives --query`` output.

    The output is a header block describing the group followed by one
    block per alternative, separated by blank lines.

    :param output: The command output.
    :type output: ``str``
    :returns: The parsed query result.
    :rtype: ``AlternativesQuery``
    :raises: ``DebdiffParseError`` on an unrecognised line.
    """
    blocks = []
    current = []
    for line in output.splitlines():
        if not line:
            if current:
                blocks.append(current)
            current = []
            continue
        current.append(line)
    if current:
        blocks.append(current)

    result = AlternativesQuery()
    if not blocks:
        return result

    _parse_block(blocks[0], result, _HEADER_KEYS, "query result")
    for block in blocks[1:]:
        alternative = Alternative()
        _parse_block(block, alternative, _ALTERNATIVE_KEYS, "query alternative")
        result.alternatives.append(alternative)
    return result


def query(name: str, root: Optional[str] = None) -> AlternativesQuery:
    """
    Query information about the alternatives group ``name``.

    :param name: The master alternative name.
    :type name: ``str``
    :param root: An alternate installation root, or ``None`` for the
                 running system.
    :type root: ``Optional[str]``
    :returns: The parsed query result.
    :rtype: ``AlternativesQuery``
    :raises: ``DebdiffCalloutError`` if ``update-alternatives`` fails, or
             ``DebdiffParseError`` if its output cannot be parsed.
    """
    output = _run_update_alternatives(
        _alternatives_args(root) + ["--query", name], f"querying for '{name}'"
    )
    try:
        return parse_query(output)
    except DebdiffParseError as err:
        raise DebdiffParseError(
            f"error parsing query result for '{name}': {err}"
        ) from err


__all__ = [
    "ALTERNATIVES_DIR",
    "ALTERNATIVES_ADMIN_DIR",
    "Alternative",
    "AlternativesQuery",
    "get_selections",
    "parse_query",
    "parse_selections",
    "query",
]
