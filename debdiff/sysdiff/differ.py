# Copyright Red Hat
#
# debdiff/sysdiff/differ.py - System differ
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Top-level system diff interface.
"""
from typing import Callable, List, Optional
import logging

from .contentdiff import ContentDifferManager
from .engine import DiffContext, DiffResults, find_divergent, find_unpackaged
from .ignore import load_ignore_rules
from .inventory import (
    build_alternatives_inventory,
    build_fs_inventory,
    build_overlay_inventory,
    build_package_inventory,
)
from .options import DiffOptions

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: A diff phase: takes the current context and returns an updated copy.
Phase = Callable[[DiffContext], DiffContext]


def load_ignore_phase(context: DiffContext) -> DiffContext:
    """
    Load the ignore rules configured in ``context.options``.
    """
    return context.update(ignore_rules=load_ignore_rules(context.options.ignore_dir))


def fs_inventory_phase(context: DiffContext) -> DiffContext:
    """
    Build the installation root inventory.
    """
    options = context.options
    inventory = build_fs_inventory(
        options.root, ignore_rules=context.ignore_rules, silent=options.silent
    )
    return context.update(fs_inventory=inventory)


def overlay_inventory_phase(context: DiffContext) -> DiffContext:
    """
    Build the overlay inventory.
    """
    return context.update(
        overlay_inventory=build_overlay_inventory(context.options.overlay)
    )


def package_inventory_phase(context: DiffContext) -> DiffContext:
    """
    Build the package inventory, merging in alternatives managed links if
    enabled.
    """
    inventory = build_package_inventory(context.options.root)
    if context.options.include_alternatives:
        inventory = inventory.union(build_alternatives_inventory(context.options.root))
    return context.update(package_inventory=inventory)


def unpackaged_phase(context: DiffContext) -> DiffContext:
    """
    Find installation root files that are neither package owned nor
    tracked by the overlay.
    """
    unpackaged = find_unpackaged(
        context.fs_inventory, context.overlay_inventory, context.package_inventory
    )
    return context.update(unpackaged=unpackaged)


def divergent_phase(context: DiffContext) -> DiffContext:
    """
    Find overlay files whose installed content differs from the overlay.
    """
    options = context.options
    divergent = find_divergent(
        context.overlay_inventory,
        options.root,
        options.overlay,
        hash_algorithm=options.hash_algorithm,
        silent=options.silent,
    )
    return context.update(divergent=divergent)


def content_diff_phase(context: DiffContext) -> DiffContext:
    """
    Generate content diffs for the divergent files.
    """
    manager = ContentDifferManager(context.options)
    return context.update(
        content_diffs=tuple(manager.generate_content_diffs(context.divergent))
    )


class SysDiffer:
    """
    Run the phases of a system diff in order.
    """

    def __init__(self, options: Optional[DiffOptions] = None):
        """
        Initialise a new ``SysDiffer``.

        :param options: Options to control this ``SysDiffer`` instance.
        :type options: ``Optional[DiffOptions]``
        """
        self.options: DiffOptions = options or DiffOptions()

    def phases(self) -> List[Phase]:
        """
        Return the phases to run for the configured options.

        :rtype: ``List[Phase]``
        """
        phases = [
            load_ignore_phase,
            fs_inventory_phase,
            overlay_inventory_phase,
            package_inventory_phase,
            unpackaged_phase,
        ]
        if self.options.include_divergent or self.options.include_content_diffs:
            phases.append(divergent_phase)
        if self.options.include_content_diffs:
            phases.append(content_diff_phase)
        return phases

    def run(self, context: Optional[DiffContext] = None) -> DiffContext:
        """
        Run every phase, starting from ``context`` or a fresh context.

        :param context: An optional initial context.
        :type context: ``Optional[DiffContext]``
        :returns: The final context.
        :rtype: ``DiffContext``
        """
        context = context or DiffContext(self.options)
        for phase in self.phases():
            _log_debug("Running phase %s", phase.__name__)
            context = phase(context)
        return context

    def compare(self) -> DiffResults:
        """
        Compare the installation root with the package inventory and the
        overlay and return the results.

        :returns: The diff results.
        :rtype: ``DiffResults``
        """
        _log_debug("Comparing with options:\n%s", self.options)
        return DiffResults.from_context(self.run())
