# Copyright Red Hat
#
# debdiff/__init__.py - System diff package initialisation
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Debdiff top-level package.
"""
from ._debdiff import *  # noqa: F401, F403
from ._debdiff import __all__  # noqa: F401

__version__ = "0.1.0"
