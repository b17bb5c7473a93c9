# Copyright Red Hat
#
# debdiff/sysdiff/options.py - System diff options
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
System diff options.
"""
from dataclasses import dataclass, fields
from typing import Optional, Union
from argparse import Namespace
import logging

from debdiff import DEFAULT_OVERLAY, DEFAULT_ROOT, DebdiffArgumentError

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: Supported content hash algorithms.
HASH_ALGORITHMS = ("md5", "sha1", "sha256", "sha512")


@dataclass(frozen=True)
class DiffOptions:
    """
    System diff options.
    """

    #: Installation root to audit
    root: str = DEFAULT_ROOT
    #: Overlay directory holding the reference copies of tracked files
    overlay: str = DEFAULT_OVERLAY
    #: Directory of ignore rule files (``None`` disables ignore rules)
    ignore_dir: Optional[str] = None
    #: Suppress non-fatal diagnostics (skipped files)
    silent: bool = False
    #: Digest used to compare overlay and installation root content
    hash_algorithm: str = "sha256"
    #: Treat paths managed by update-alternatives as package owned
    include_alternatives: bool = False
    #: Compute the divergent file report
    include_divergent: bool = False
    #: Generate content diffs for divergent files
    include_content_diffs: bool = False
    #: Generate file type information using magic
    use_magic_file_type: bool = False
    #: Maximum file size for generating content diffs
    max_content_diff_size: int = 2**20

    def __post_init__(self):
        if self.hash_algorithm not in HASH_ALGORITHMS:
            raise DebdiffArgumentError(
                f"Unknown hash algorithm: {self.hash_algorithm}"
            )
        if self.max_content_diff_size < 0:
            raise DebdiffArgumentError(
                f"Invalid maximum content diff size: {self.max_content_diff_size}"
            )

    def __str__(self):
        """
        Return a human readable string representation of this
        ``DiffOptions`` instance.

        :returns: A human readable string.
        :rtype: ``str``
        """
        return "\n".join(f"{key}={val}" for key, val in self.__dict__.items())

    @classmethod
    def from_cmd_args(cls, cmd_args: Namespace) -> "DiffOptions":
        """
        Initialise DiffOptions from command line arguments.

        Construct a new ``DiffOptions`` object from the command line
        arguments in ``cmd_args``. Attributes missing from ``cmd_args``,
        or set to ``None``, take their default values.

        :param cmd_args: The command line arguments.
        :type cmd_args: ``Namespace``
        :returns: A new ``DiffOptions`` instance
        :rtype: ``DiffOptions``
        """

        def get_value(name: str) -> Union[bool, int, Optional[str]]:
            """
            Get a value from ``cmd_args``, mapping empty ignore directory
            strings to ``None``.

            :param name: The name of the argument.
            :type name: ``str``
            :returns: The argument value.
            :rtype: ``Union[bool, int, Optional[str]]``
            """
            attr = getattr(cmd_args, name)
            if name == "ignore_dir" and not attr:
                return None
            return attr

        field_names = {f.name for f in fields(cls)}
        kwargs = {
            name: get_value(name)
            for name in field_names
            if getattr(cmd_args, name, None) is not None
        }
        options = cls(**kwargs)
        _log_debug("Initialised DiffOptions from arguments: %s", repr(options))
        return options
