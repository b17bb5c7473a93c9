# Copyright Red Hat
#
# debdiff/sysdiff/__init__.py - System diff package
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
System diff package.

Compares the files present beneath an installation root with the files
owned by installed dpkg packages and the files tracked by an overlay
directory. The main entry points are ``SysDiffer`` and ``DiffOptions``.
"""
from .engine import DiffContext, DiffResults
from .differ import SysDiffer
from .ignore import IgnoreRules, load_ignore_rules
from .inventory import Inventory
from .options import DiffOptions

__all__ = [
    "DiffContext",
    "DiffOptions",
    "DiffResults",
    "IgnoreRules",
    "Inventory",
    "SysDiffer",
    "load_ignore_rules",
]
