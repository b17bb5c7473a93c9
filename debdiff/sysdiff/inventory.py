# Copyright Red Hat
#
# debdiff/sysdiff/inventory.py - System diff file inventories
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
File inventory builders for the installation root, the overlay directory,
dpkg package manifests and the alternatives system.

Every inventory holds root-relative paths with exactly one leading '/',
sorted and deduplicated, so that membership can be tested by binary
search.
"""
from typing import Iterable, Iterator, List, Optional
from collections.abc import Sequence
from bisect import bisect_left
from glob import escape, glob
import logging
import os

from debdiff import (
    DEBDIFF_SUBSYSTEM_INVENTORY,
    DPKG_INFO_DIR,
    DPKG_MANIFEST_SUFFIXES,
    DebdiffInventoryError,
)
from debdiff.alternatives import get_selections, query, ALTERNATIVES_DIR

from .ignore import IgnoreRules

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_inventory(msg, *args, **kwargs):
    """A wrapper for inventory subsystem debug logs."""
    _log.debug(
        msg, *args, extra={"subsystem": DEBDIFF_SUBSYSTEM_INVENTORY}, **kwargs
    )


def contains(sorted_paths: Sequence[str], path: str) -> bool:
    """
    Binary search membership test for a sorted sequence of strings.

    :param sorted_paths: A lexicographically sorted sequence.
    :type sorted_paths: ``Sequence[str]``
    :param path: The value to look for.
    :type path: ``str``
    :returns: ``True`` if ``path`` is an element of ``sorted_paths``.
    :rtype: ``bool``
    """
    i = bisect_left(sorted_paths, path)
    if i == len(sorted_paths):
        return False
    return sorted_paths[i] == path


class Inventory(Sequence):
    """
    An immutable, sorted, deduplicated sequence of paths.
    """

    def __init__(self, paths: Iterable[str] = ()):
        """
        Initialise a new ``Inventory`` from the paths in ``paths``.

        :param paths: The paths to store, in any order, duplicates allowed.
        :type paths: ``Iterable[str]``
        """
        self._paths = tuple(sorted(set(paths)))

    def __getitem__(self, index):
        return self._paths[index]

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)

    def __contains__(self, path) -> bool:
        if not isinstance(path, str):
            return False
        return contains(self._paths, path)

    def __eq__(self, other):
        if isinstance(other, Inventory):
            return self._paths == other._paths
        if isinstance(other, (list, tuple)):
            return list(self._paths) == list(other)
        return NotImplemented

    def __hash__(self):
        return hash(self._paths)

    def __repr__(self):
        return f"Inventory({list(self._paths)!r})"

    def union(self, other: Iterable[str]) -> "Inventory":
        """
        Return a new ``Inventory`` containing the paths of this inventory
        and of ``other``.

        :param other: Paths to merge with this inventory.
        :type other: ``Iterable[str]``
        :rtype: ``Inventory``
        """
        return Inventory(list(self._paths) + list(other))

    def paths(self) -> List[str]:
        """
        Return the paths in this inventory as a list.

        :rtype: ``List[str]``
        """
        return list(self._paths)


def normalize_path(path: str, strip_prefix: str = "") -> str:
    """
    Strip ``strip_prefix`` from ``path`` and return the remainder with
    exactly one leading separator and no trailing separator.

    :param path: The path to normalize.
    :type path: ``str``
    :param strip_prefix: A leading directory prefix to remove.
    :type strip_prefix: ``str``
    :returns: The root-relative path.
    :rtype: ``str``
    """
    stripped = path.removeprefix(strip_prefix) if strip_prefix else path
    stripped = stripped.strip(os.sep)
    return os.sep + stripped


def build_fs_inventory(
    root: str, ignore_rules: Optional[IgnoreRules] = None, silent: bool = False
) -> Inventory:
    """
    Walk the installation root and return an inventory of every file that
    is not matched by an ignore rule.

    Ignore rules are applied to root-relative paths. An ignored directory
    is not descended. Directories are never recorded; symbolic links to
    directories are recorded and not followed. Permission errors skip the
    affected entry; other errors are fatal.

    :param root: The installation root to walk.
    :type root: ``str``
    :param ignore_rules: The ignore rules to apply.
    :type ignore_rules: ``Optional[IgnoreRules]``
    :param silent: Suppress logging of skipped entries.
    :type silent: ``bool``
    :returns: The filesystem inventory.
    :rtype: ``Inventory``
    :raises: ``DebdiffInventoryError`` on a non-permission walk error.
    """
    ignore_rules = ignore_rules or IgnoreRules()
    strip_prefix = root.rstrip(os.sep)
    files = []
    skipped = 0
    ignored = 0

    def _on_error(err: OSError):
        nonlocal skipped
        if isinstance(err, PermissionError):
            skipped += 1
            if not silent:
                _log_warn("Skipping file: %s", err)
            return
        raise err

    if ignore_rules.is_ignored(os.sep):
        _log_info("Installation root %s is ignored", root)
        return Inventory()

    _log_info("Gathering files from installation root %s", root)

    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            keep = []
            for name in dirnames:
                full_path = os.path.join(dirpath, name)
                path = normalize_path(full_path, strip_prefix)
                if ignore_rules.is_ignored(path):
                    ignored += 1
                    continue
                if os.path.islink(full_path):
                    # os.walk() lists symlinks to directories with dirnames.
                    files.append(path)
                    continue
                keep.append(name)
            dirnames[:] = keep

            for name in filenames:
                path = normalize_path(os.path.join(dirpath, name), strip_prefix)
                if ignore_rules.is_ignored(path):
                    ignored += 1
                    continue
                files.append(path)
    except OSError as err:
        raise DebdiffInventoryError(f"walking all files: {err}") from err

    inventory = Inventory(files)
    _log_info(
        "Found %d files under %s (ignored %d, skipped %d)",
        len(inventory),
        root,
        ignored,
        skipped,
    )
    return inventory


def build_overlay_inventory(overlay: str) -> Inventory:
    """
    Walk the overlay directory and return an inventory of the files it
    contains as root-relative paths. Any walk error is fatal.

    :param overlay: The overlay directory.
    :type overlay: ``str``
    :returns: The overlay inventory.
    :rtype: ``Inventory``
    :raises: ``DebdiffInventoryError`` if the overlay cannot be walked.
    """

    def _on_error(err: OSError):
        raise err

    if not os.path.isdir(overlay):
        raise DebdiffInventoryError(
            f"walking overlay files: {overlay}: not a directory"
        )

    strip_prefix = overlay.rstrip(os.sep)
    files = []
    try:
        for dirpath, dirnames, filenames in os.walk(overlay, onerror=_on_error):
            keep = []
            for name in dirnames:
                full_path = os.path.join(dirpath, name)
                if os.path.islink(full_path):
                    files.append(normalize_path(full_path, strip_prefix))
                    continue
                keep.append(name)
            dirnames[:] = keep
            files.extend(
                normalize_path(os.path.join(dirpath, name), strip_prefix)
                for name in filenames
            )
    except OSError as err:
        raise DebdiffInventoryError(f"walking overlay files: {err}") from err

    inventory = Inventory(files)
    _log_info("Found %d files in overlay %s", len(inventory), overlay)
    return inventory


def _is_canonical(path: str) -> bool:
    """
    Return ``True`` if ``path`` is in the form produced by
    ``normalize_path()``.
    """
    return path == normalize_path(path)


def find_manifests(root: str) -> List[str]:
    """
    Return the dpkg file list and conffiles manifests found beneath
    ``root``.

    :param root: The installation root.
    :type root: ``str``
    :returns: Manifest paths, file lists first, each group sorted.
    :rtype: ``List[str]``
    """
    info_dir = os.path.join(root, DPKG_INFO_DIR)
    manifests = []
    for suffix in DPKG_MANIFEST_SUFFIXES:
        manifests.extend(sorted(glob(os.path.join(escape(info_dir), "*" + suffix))))
    return manifests


def read_manifest(manifest: str) -> List[str]:
    """
    Read a dpkg manifest and return its non-empty lines verbatim. Lines
    are split on '\\n' only: any other control or separator character is
    part of the path.

    :param manifest: The path to the manifest file.
    :type manifest: ``str``
    :returns: The paths listed in the manifest.
    :rtype: ``List[str]``
    :raises: ``OSError`` if the manifest cannot be read.
    """
    with open(
        manifest, "r", encoding="utf8", errors="surrogateescape", newline="\n"
    ) as fp:
        return [line for line in fp.read().split("\n") if line]


def build_package_inventory(root: str) -> Inventory:
    """
    Read the dpkg ``*.list`` and ``*.conffiles`` manifests below ``root``
    and return an inventory of the package owned paths. Manifest entries
    are recorded verbatim. Any read failure is fatal.

    :param root: The installation root.
    :type root: ``str``
    :returns: The package inventory.
    :rtype: ``Inventory``
    :raises: ``DebdiffInventoryError`` if a manifest cannot be read.
    """
    try:
        manifests = find_manifests(root)
    except OSError as err:
        raise DebdiffInventoryError(f"looking for dpkg info lists: {err}") from err

    files = []
    for manifest in manifests:
        try:
            entries = read_manifest(manifest)
        except OSError as err:
            raise DebdiffInventoryError(
                f"reading dpkg info file: {manifest}: {err}"
            ) from err
        odd = [entry for entry in entries if not _is_canonical(entry)]
        if odd:
            _log_debug_inventory(
                "Manifest %s has %d non-canonical entries (first: '%s')",
                manifest,
                len(odd),
                odd[0],
            )
        files.extend(entries)

    inventory = Inventory(files)
    _log_info(
        "Found %d package owned paths in %d manifests", len(inventory), len(manifests)
    )
    return inventory


def build_alternatives_inventory(root: str) -> Inventory:
    """
    Return an inventory of the links managed by the alternatives system:
    each group's master and slave links, and the corresponding entries in
    ``/etc/alternatives``.

    :param root: The installation root.
    :type root: ``str``
    :returns: The alternatives inventory.
    :rtype: ``Inventory``
    :raises: ``DebdiffCalloutError`` or ``DebdiffParseError`` if the
             alternatives system cannot be queried.
    """
    root = None if normalize_path(root) == os.sep else root
    paths = []
    names = get_selections(root=root)
    for name in names:
        result = query(name, root=root)
        if result.link:
            paths.append(result.link)
        paths.append(os.path.join(ALTERNATIVES_DIR, result.name or name))
        for slave_name, slave_link in result.slaves.items():
            paths.append(slave_link)
            paths.append(os.path.join(ALTERNATIVES_DIR, slave_name))
    inventory = Inventory(paths)
    _log_info(
        "Found %d alternatives managed paths in %d groups", len(inventory), len(names)
    )
    return inventory
