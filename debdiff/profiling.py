# Copyright Red Hat
#
# debdiff/profiling.py - CPU profiling support
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
CPU profiling support using cProfile.

Profile data is written in ``pstats`` format and can be inspected with
``python3 -m pstats FILE``.
"""
from contextlib import contextmanager
from typing import Iterator, Optional
import cProfile
import logging

from debdiff import DebdiffError

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


@contextmanager
def cpu_profile(profile_file: Optional[str]) -> Iterator[Optional[cProfile.Profile]]:
    """
    Profile the body of the ``with`` statement and write the collected
    statistics to ``profile_file``. Profiling is disabled if
    ``profile_file`` is ``None`` or empty.

    :param profile_file: The path to write profile data to.
    :type profile_file: ``Optional[str]``
    :returns: A context manager yielding the active profiler, or ``None``.
    :raises: ``DebdiffError`` if the profile file cannot be created.
    """
    if not profile_file:
        yield None
        return

    # Fail before doing any work if the profile cannot be written.
    try:
        with open(profile_file, "wb"):
            pass
    except OSError as err:
        raise DebdiffError(f"error creating cpu profile: {err}") from err

    profiler = cProfile.Profile()
    profiler.enable()
    try:
        yield profiler
    finally:
        profiler.disable()
        profiler.dump_stats(profile_file)
        _log_debug("Wrote CPU profile to %s", profile_file)
