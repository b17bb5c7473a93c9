# Copyright Red Hat
#
# debdiff/_debdiff.py - System diff global definitions
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Global definitions for the top-level debdiff package.
"""
import logging

_log = logging.getLogger("debdiff")

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

# Debdiff debugging subsystem mask
DEBDIFF_DEBUG_IGNORE = 1
DEBDIFF_DEBUG_INVENTORY = 2
DEBDIFF_DEBUG_ENGINE = 4
DEBDIFF_DEBUG_ALTERNATIVES = 8
DEBDIFF_DEBUG_COMMAND = 16
DEBDIFF_DEBUG_ALL = (
    DEBDIFF_DEBUG_IGNORE
    | DEBDIFF_DEBUG_INVENTORY
    | DEBDIFF_DEBUG_ENGINE
    | DEBDIFF_DEBUG_ALTERNATIVES
    | DEBDIFF_DEBUG_COMMAND
)

# Debdiff debugging subsystem names
DEBDIFF_SUBSYSTEM_IGNORE = "debdiff.ignore"
DEBDIFF_SUBSYSTEM_INVENTORY = "debdiff.inventory"
DEBDIFF_SUBSYSTEM_ENGINE = "debdiff.engine"
DEBDIFF_SUBSYSTEM_ALTERNATIVES = "debdiff.alternatives"
DEBDIFF_SUBSYSTEM_COMMAND = "debdiff.command"

_DEBUG_MASK_TO_SUBSYSTEM = {
    DEBDIFF_DEBUG_IGNORE: DEBDIFF_SUBSYSTEM_IGNORE,
    DEBDIFF_DEBUG_INVENTORY: DEBDIFF_SUBSYSTEM_INVENTORY,
    DEBDIFF_DEBUG_ENGINE: DEBDIFF_SUBSYSTEM_ENGINE,
    DEBDIFF_DEBUG_ALTERNATIVES: DEBDIFF_SUBSYSTEM_ALTERNATIVES,
    DEBDIFF_DEBUG_COMMAND: DEBDIFF_SUBSYSTEM_COMMAND,
}

_debug_subsystems = set()

#: Default installation root to audit.
DEFAULT_ROOT = "/"

#: Default overlay (reference) directory.
DEFAULT_OVERLAY = "/usr/share/debdiff"

#: Location of the dpkg package metadata relative to the installation root.
DPKG_INFO_DIR = "var/lib/dpkg/info"

#: Manifest suffixes read from ``DPKG_INFO_DIR``.
DPKG_MANIFEST_SUFFIXES = (".list", ".conffiles")


class SubsystemFilter(logging.Filter):
    """
    Filters DEBUG records based on a set of enabled subsystem names.
    Non-DEBUG records or DEBUG records without a 'subsystem' attribute
    are always passed through.
    """

    def __init__(self, name=""):
        super().__init__(name)
        self.enabled_subsystems = set(_debug_subsystems)

    def filter(self, record):
        # Always pass non-DEBUG messages.
        if record.levelno != logging.DEBUG:
            return True

        # Always pass DEBUG messages that aren't for a specific subsystem.
        if not hasattr(record, "subsystem"):
            return True

        return record.subsystem in self.enabled_subsystems

    def set_debug_subsystems(self, subsystems):
        """Sets the collection of subsystems to allow."""
        self.enabled_subsystems = set(subsystems)


def get_debug_mask():
    """
    Return the current debug mask for the ``debdiff`` package.

    :returns: The current debug mask value
    :rtype: int
    """
    enabled_subsystems = set(_debug_subsystems)
    debdiff_log = logging.getLogger("debdiff")

    for handler in debdiff_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                enabled_subsystems.update(f.enabled_subsystems)

    mask_map = {v: k for k, v in _DEBUG_MASK_TO_SUBSYSTEM.items()}
    mask = 0
    for subsystem_name in enabled_subsystems:
        mask |= mask_map.get(subsystem_name, 0)
    return mask


def set_debug_mask(mask):
    """
    Set the debug mask for the ``debdiff`` package.

    :param mask: the logical OR of the ``DEBDIFF_DEBUG_*``
                 values to log.
    :rtype: None
    """
    # pylint: disable=global-statement
    global _debug_subsystems

    if mask < 0 or mask > DEBDIFF_DEBUG_ALL:
        raise ValueError(f"Invalid debdiff debug mask: {mask}")

    enabled_subsystems = []
    for flag, subsystem_name in _DEBUG_MASK_TO_SUBSYSTEM.items():
        if mask & flag:
            enabled_subsystems.append(subsystem_name)

    debdiff_log = logging.getLogger("debdiff")
    for handler in debdiff_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                f.set_debug_subsystems(enabled_subsystems)

    _debug_subsystems = set(enabled_subsystems)


#
# Debdiff exception types
#


class DebdiffError(Exception):
    """
    Base class for system diff errors.
    """


class DebdiffIgnoreError(DebdiffError):
    """
    An error loading ignore rules: the ignore directory could not be
    walked, a rule file could not be read, or a glob pattern is invalid.
    """


class DebdiffInventoryError(DebdiffError):
    """
    An error building one of the file inventories.
    """


class DebdiffContentError(DebdiffError):
    """
    An error reading file content while comparing the overlay with the
    installation root.
    """


class DebdiffCalloutError(DebdiffError):
    """
    An error calling out to an external program.
    """


class DebdiffParseError(DebdiffError):
    """
    An error parsing the output of an external program.
    """


class DebdiffArgumentError(DebdiffError):
    """
    An invalid argument was passed to a debdiff API call.
    """


__all__ = [
    "DEBDIFF_DEBUG_IGNORE",
    "DEBDIFF_DEBUG_INVENTORY",
    "DEBDIFF_DEBUG_ENGINE",
    "DEBDIFF_DEBUG_ALTERNATIVES",
    "DEBDIFF_DEBUG_COMMAND",
    "DEBDIFF_DEBUG_ALL",
    # Debug logging - subsystem name interface
    "SubsystemFilter",
    "DEBDIFF_SUBSYSTEM_IGNORE",
    "DEBDIFF_SUBSYSTEM_INVENTORY",
    "DEBDIFF_SUBSYSTEM_ENGINE",
    "DEBDIFF_SUBSYSTEM_ALTERNATIVES",
    "DEBDIFF_SUBSYSTEM_COMMAND",
    "set_debug_mask",
    "get_debug_mask",
    # Defaults and locations
    "DEFAULT_ROOT",
    "DEFAULT_OVERLAY",
    "DPKG_INFO_DIR",
    "DPKG_MANIFEST_SUFFIXES",
    # Exceptions
    "DebdiffError",
    "DebdiffIgnoreError",
    "DebdiffInventoryError",
    "DebdiffContentError",
    "DebdiffCalloutError",
    "DebdiffParseError",
    "DebdiffArgumentError",
]
