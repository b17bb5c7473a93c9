# Copyright Red Hat
#
# debdiff/sysdiff/engine.py - System diff engine
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Set difference and content divergence passes over the file inventories.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Optional, Tuple, TYPE_CHECKING
from hashlib import md5, sha1, sha256, sha512
import logging
import json
import os

from debdiff import DEBDIFF_SUBSYSTEM_ENGINE, DebdiffContentError

from .ignore import IgnoreRules
from .inventory import Inventory
from .options import DiffOptions

if TYPE_CHECKING:
    from .contentdiff import ContentDiff

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_engine(msg, *args, **kwargs):
    """A wrapper for engine subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": DEBDIFF_SUBSYSTEM_ENGINE}, **kwargs)


_HASH_TYPES = {
    "md5": md5,
    "sha1": sha1,
    "sha256": sha256,
    "sha512": sha512,
}

#: Read size for streaming content hashes.
_HASH_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class DiffContext:
    """
    State of a single diff run. Each phase returns an updated copy.
    """

    #: Options for this run
    options: DiffOptions
    #: Loaded ignore rules
    ignore_rules: IgnoreRules = field(default_factory=IgnoreRules)
    #: Files present beneath the installation root
    fs_inventory: Inventory = field(default_factory=Inventory)
    #: Files tracked by the overlay directory
    overlay_inventory: Inventory = field(default_factory=Inventory)
    #: Paths owned by installed packages
    package_inventory: Inventory = field(default_factory=Inventory)
    #: Files owned by neither a package nor the overlay
    unpackaged: Tuple[str, ...] = ()
    #: Overlay files whose content differs from the installation root
    divergent: Tuple[str, ...] = ()
    #: Content diffs for divergent files
    content_diffs: Tuple["ContentDiff", ...] = ()

    def update(self, **changes) -> "DiffContext":
        """
        Return a copy of this context with ``changes`` applied.

        :rtype: ``DiffContext``
        """
        return replace(self, **changes)


def find_unpackaged(
    fs_inventory: Inventory, overlay_inventory: Inventory, package_inventory: Inventory
) -> Tuple[str, ...]:
    """
    Return the paths in ``fs_inventory`` that appear in neither
    ``overlay_inventory`` nor ``package_inventory``, in sorted order.

    :param fs_inventory: Files present beneath the installation root.
    :type fs_inventory: ``Inventory``
    :param overlay_inventory: Files tracked by the overlay.
    :type overlay_inventory: ``Inventory``
    :param package_inventory: Paths owned by installed packages.
    :type package_inventory: ``Inventory``
    :returns: The unpackaged paths.
    :rtype: ``Tuple[str, ...]``
    """
    unpackaged = tuple(
        path
        for path in fs_inventory
        if path not in overlay_inventory and path not in package_inventory
    )
    _log_info("Found %d unpackaged files", len(unpackaged))
    return unpackaged


def file_hash(path: str, hash_algorithm: str = "sha256") -> Optional[str]:
    """
    Return the hex digest of the content of ``path``, or ``None`` if the
    file does not exist.

    :param path: The file to hash.
    :type path: ``str``
    :param hash_algorithm: One of ``md5``, ``sha1``, ``sha256``, ``sha512``.
    :type hash_algorithm: ``str``
    :returns: The content digest or ``None`` for a missing file.
    :rtype: ``Optional[str]``
    :raises: ``OSError`` for errors other than a missing file.
    """
    hasher = _HASH_TYPES[hash_algorithm](usedforsecurity=False)
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_HASH_CHUNK_SIZE), b""):
                hasher.update(chunk)
    except (FileNotFoundError, NotADirectoryError):
        # A path component that is a regular file means the path is absent.
        return None
    return hasher.hexdigest()


def host_path(base: str, path: str) -> str:
    """
    Return the location of root-relative ``path`` beneath ``base``.

    :param base: The installation root or overlay directory.
    :type base: ``str``
    :param path: A root-relative path.
    :type path: ``str``
    :rtype: ``str``
    """
    return os.path.join(base, path.lstrip(os.sep))


def find_divergent(
    overlay_inventory: Inventory,
    root: str,
    overlay: str,
    hash_algorithm: str = "sha256",
    silent: bool = False,
) -> Tuple[str, ...]:
    """
    Return the overlay paths whose content beneath ``root`` differs from
    the reference copy beneath ``overlay``.

    A file missing on either side hashes as absent: two absent sides are
    equal, one absent side is divergent. Paths that cannot be read due to
    permissions, or that resolve to a directory on either side, are
    skipped.

    :param overlay_inventory: Files tracked by the overlay.
    :type overlay_inventory: ``Inventory``
    :param root: The installation root.
    :type root: ``str``
    :param overlay: The overlay directory.
    :type overlay: ``str``
    :param hash_algorithm: The content digest to use.
    :type hash_algorithm: ``str``
    :param silent: Suppress logging of skipped files.
    :type silent: ``bool``
    :returns: The divergent paths in sorted order.
    :rtype: ``Tuple[str, ...]``
    :raises: ``DebdiffContentError`` on an error other than a missing file,
             a permission error or a directory.
    """
    divergent = []
    skipped = 0
    for path in overlay_inventory:
        try:
            root_hash = file_hash(host_path(root, path), hash_algorithm)
            overlay_hash = file_hash(host_path(overlay, path), hash_algorithm)
        except (PermissionError, IsADirectoryError) as err:
            skipped += 1
            if not silent:
                _log_warn("Skipping file: %s", err)
            continue
        except OSError as err:
            raise DebdiffContentError(f"hashing file: {path}: {err}") from err

        if root_hash != overlay_hash:
            _log_debug_engine(
                "Content differs for %s (%s != %s)", path, root_hash, overlay_hash
            )
            divergent.append(path)

    _log_info("Found %d divergent files (skipped %d)", len(divergent), skipped)
    return tuple(divergent)


class DiffResults:
    """Container for system diff results with formatting methods."""

    def __init__(
        self,
        unpackaged: Tuple[str, ...],
        divergent: Tuple[str, ...] = (),
        content_diffs: Tuple["ContentDiff", ...] = (),
        options: Optional[DiffOptions] = None,
    ):
        self.unpackaged = tuple(unpackaged)
        self.divergent = tuple(divergent)
        self.content_diffs = tuple(content_diffs)
        self.options = options or DiffOptions()

    @classmethod
    def from_context(cls, context: DiffContext) -> "DiffResults":
        """
        Build a ``DiffResults`` from a completed ``DiffContext``.

        :param context: The final context of a diff run.
        :type context: ``DiffContext``
        :rtype: ``DiffResults``
        """
        return cls(
            context.unpackaged,
            divergent=context.divergent,
            content_diffs=context.content_diffs,
            options=context.options,
        )

    def __repr__(self) -> str:
        return (
            f"DiffResults({list(self.unpackaged)!r}, "
            f"divergent={list(self.divergent)!r})"
        )

    def __iter__(self) -> Iterator[str]:
        return iter(self.unpackaged)

    def __len__(self):
        return len(self.unpackaged)

    def __getitem__(self, index: int) -> str:
        return self.unpackaged[index]

    def paths(self) -> List[str]:
        """
        Return the unpackaged paths.

        :returns: Path list.
        :rtype: ``List[str]``
        """
        return list(self.unpackaged)

    def divergent_paths(self) -> List[str]:
        """
        Return the divergent overlay paths.

        :returns: Path list.
        :rtype: ``List[str]``
        """
        return list(self.divergent)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert these results into a dictionary suitable for encoding as
        JSON. Keys for reports that were not requested are omitted.

        :rtype: ``Dict[str, Any]``
        """
        out: Dict[str, Any] = {"unpackaged": list(self.unpackaged)}
        if self.options.include_divergent:
            out["divergent"] = list(self.divergent)
        if self.options.include_content_diffs:
            out["content_diffs"] = [cd.to_dict() for cd in self.content_diffs]
        return out

    def json(self, pretty: bool = False) -> str:
        """
        Return a JSON representation of these results.

        :param pretty: Indent JSON to be human readable.
        :type pretty: ``bool``
        :rtype: ``str``
        """
        return json.dumps(self.to_dict(), indent=4 if pretty else None)

    def diff(self) -> str:
        """
        Return the content diffs of divergent files as a single string.

        :rtype: ``str``
        """
        return "".join(cd.render() for cd in self.content_diffs)
