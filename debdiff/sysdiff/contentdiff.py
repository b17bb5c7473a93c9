# Copyright Red Hat
#
# debdiff/sysdiff/contentdiff.py - System diff content diffs
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Content diffs for overlay files that diverge from the installation root.

The overlay copy is the "old" side of each diff and the installed copy is
the "new" side, so a diff reads as the change made on the system relative
to the intended content.
"""
from typing import Any, Dict, List, Optional
from abc import ABC, abstractmethod
from pathlib import Path
import logging
import difflib
import os

from debdiff import DEBDIFF_SUBSYSTEM_ENGINE

from .engine import host_path
from .filetypes import FileTypeDetector, FileTypeInfo
from .options import DiffOptions

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_engine(msg, *args, **kwargs):
    """A wrapper for engine subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": DEBDIFF_SUBSYSTEM_ENGINE}, **kwargs)


class ContentDiff:
    """
    Represents a content diff between the overlay and installed copies of
    one file.
    """

    def __init__(self, path: str, diff_type: str, summary: str = ""):
        """
        Initialise a new ``ContentDiff`` object.

        :param path: The root-relative path that was compared.
        :type path: ``str``
        :param diff_type: The kind of diff: 'unified', 'binary' or 'summary'.
        :type diff_type: ``str``
        :param summary: A summary of the difference.
        :type summary: ``str``
        """
        self.path = path
        self.diff_type = diff_type
        self.diff_data: List[str] = []
        self.summary = summary
        self.has_changes = False
        self.error_message: Optional[str] = None

    def __str__(self):
        return (
            f"path: {self.path}\n"
            f"  diff_type: {self.diff_type}\n"
            f"  diff_data: <{len(self.diff_data)} lines>\n"
            f"  summary: {self.summary}\n"
            f"  has_changes: {self.has_changes}\n"
            f"  error_message: {self.error_message if self.error_message else ''}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this ``ContentDiff`` object into a dictionary representation
        suitable for encoding as JSON.

        :returns: A dictionary mapping this instance's keys to values.
        :rtype: ``Dict[str, Any]``
        """
        return {
            "path": self.path,
            "diff_type": self.diff_type,
            "diff_data": self.diff_data,
            "summary": self.summary,
            "has_changes": self.has_changes,
            "error_message": self.error_message,
        }

    def render(self) -> str:
        """
        Render this diff as text.

        :returns: A unified diff, or a one line description for binary,
                  oversized or unreadable files.
        :rtype: ``str``
        """
        if self.error_message:
            return f"Could not diff {self.path}: {self.error_message}\n"
        if self.diff_type == "unified":
            return "".join(
                line if line.endswith("\n") else line + "\n" for line in self.diff_data
            )
        if self.diff_type == "binary":
            return f"Binary files a{self.path} and b{self.path} differ\n"
        return f"Files a{self.path} and b{self.path} differ ({self.summary})\n"


class ContentDifferBase(ABC):
    """
    Base class for content diff implementations.
    """

    @abstractmethod
    def can_handle(self, file_type_info: FileTypeInfo) -> bool:
        """
        Return True if this differ can handle the given file type.

        :param file_type_info: File type information for the file to compare.
        :type file_type_info: ``FileTypeInfo``
        :returns: ``True`` if this content differ can handle this file.
        :rtype: ``bool``
        """

    @abstractmethod
    def generate_diff(
        self,
        path: str,
        old_path: Path,
        new_path: Path,
        file_type_info: FileTypeInfo,
    ) -> ContentDiff:
        """
        Generate a content diff between two files.

        :param path: The root-relative path being compared.
        :type path: ``str``
        :param old_path: Location of the overlay copy.
        :type old_path: ``Path``
        :param new_path: Location of the installed copy.
        :type new_path: ``Path``
        :param file_type_info: File type information for ``path``.
        :type file_type_info: ``FileTypeInfo``
        :returns: A diff of the two files.
        :rtype: ``ContentDiff``
        """

    @property
    @abstractmethod
    def priority(self) -> int:
        """
        Priority for selection when multiple differs match (higher = preferred)

        :returns: Integer priority level.
        :rtype: ``int``
        """


def _read_lines(path: Path, encoding: str) -> List[str]:
    """Read ``path`` as text, treating a missing file as empty."""
    try:
        with open(path, "r", encoding=encoding, errors="replace") as f:
            return f.readlines()
    except (FileNotFoundError, NotADirectoryError):
        return []


class TextContentDiffer(ContentDifferBase):
    """
    Unified diff generator for text-like files.
    """

    def can_handle(self, file_type_info: FileTypeInfo) -> bool:
        return file_type_info.is_text_like

    def generate_diff(
        self,
        path: str,
        old_path: Path,
        new_path: Path,
        file_type_info: FileTypeInfo,
    ) -> ContentDiff:
        encoding = file_type_info.encoding
        if not encoding or encoding == "binary":
            encoding = "utf8"

        content_diff = ContentDiff(path, "unified")
        try:
            old_lines = _read_lines(old_path, encoding)
            new_lines = _read_lines(new_path, encoding)
        except (OSError, LookupError) as err:
            _log_debug_engine(
                "TextContentDiffer error reading %s / %s: %s", old_path, new_path, err
            )
            content_diff.error_message = str(err)
            content_diff.summary = "Error reading text content"
            return content_diff

        content_diff.diff_data = list(
            difflib.unified_diff(
                old_lines,
                new_lines,
                fromfile=f"a{path}",
                tofile=f"b{path}",
            )
        )
        content_diff.has_changes = len(content_diff.diff_data) > 0

        def count(prefix: str) -> int:
            return len(
                [
                    ln
                    for ln in content_diff.diff_data
                    if ln.startswith(prefix) and not ln.startswith(3 * prefix)
                ]
            )

        content_diff.summary = f"{count('-')} deletions, {count('+')} additions"
        return content_diff

    @property
    def priority(self) -> int:
        return 10


class BinaryContentDiffer(ContentDifferBase):
    """
    Summary generator for binary files.
    """

    def can_handle(self, file_type_info: FileTypeInfo) -> bool:
        return not file_type_info.is_text_like

    def generate_diff(
        self,
        path: str,
        old_path: Path,
        new_path: Path,
        file_type_info: FileTypeInfo,
    ) -> ContentDiff:
        content_diff = ContentDiff(path, "binary")
        size_diff = _size(new_path) - _size(old_path)
        content_diff.has_changes = True
        content_diff.summary = (
            f"{file_type_info.description}: size changed by {size_diff:+d} bytes"
            if size_diff
            else f"{file_type_info.description}: content changed"
        )
        return content_diff

    @property
    def priority(self) -> int:
        return 0


def _size(path: Path) -> int:
    """Return the size of ``path``, or 0 if it does not exist."""
    try:
        return os.stat(path).st_size
    except (FileNotFoundError, NotADirectoryError):
        return 0


class ContentDifferManager:
    """
    Manager for content diff implementations.
    """

    def __init__(self, options: Optional[DiffOptions] = None):
        """
        Initialise a new ``ContentDifferManager`` instance.

        :param options: Options controlling diff generation.
        :type options: ``Optional[DiffOptions]``
        """
        self.options = options or DiffOptions()
        self.file_type_detector = FileTypeDetector()
        self.differs: List[ContentDifferBase] = []
        self.register_differ(TextContentDiffer())
        self.register_differ(BinaryContentDiffer())

    def register_differ(self, differ: ContentDifferBase):
        """
        Register a new content differ.
        """
        self.differs.append(differ)
        self.differs.sort(key=lambda d: d.priority, reverse=True)

    def get_differ_for_file(self, file_type_info: FileTypeInfo) -> ContentDifferBase:
        """
        Get the best content differ for a file type.

        :param file_type_info: The file type to find a differ for.
        :type file_type_info: ``FileTypeInfo``
        :returns: An appropriate differ for ``file_type_info``.
        :rtype: A ``ContentDifferBase`` subclass.
        """
        for differ in self.differs:
            if differ.can_handle(file_type_info):
                return differ
        return BinaryContentDiffer()

    def generate_content_diff(self, path: str) -> ContentDiff:
        """
        Generate a content diff between the overlay and installed copies
        of the root-relative ``path``.

        :param path: The root-relative path to diff.
        :type path: ``str``
        :returns: A diff of the two copies.
        :rtype: ``ContentDiff``
        """
        old_path = Path(host_path(self.options.overlay, path))
        new_path = Path(host_path(self.options.root, path))

        try:
            size = max(_size(old_path), _size(new_path))
        except OSError as err:
            content_diff = ContentDiff(path, "summary")
            content_diff.error_message = str(err)
            return content_diff

        if size > self.options.max_content_diff_size:
            content_diff = ContentDiff(
                path,
                "summary",
                summary=f"exceeds maximum diff size of "
                f"{self.options.max_content_diff_size} bytes",
            )
            content_diff.has_changes = True
            return content_diff

        # Prefer the installed copy for libmagic: the overlay copy may not
        # exist if the file is expected to be absent.
        detect_path = new_path if os.path.lexists(new_path) else old_path
        file_type_info = self.file_type_detector.detect_file_type(
            detect_path,
            use_magic=self.options.use_magic_file_type,
            logical_path=Path(path),
        )
        differ = self.get_differ_for_file(file_type_info)
        _log_debug_engine(
            "Generating %s diff for %s (%s)",
            differ.__class__.__name__,
            path,
            file_type_info,
        )
        return differ.generate_diff(path, old_path, new_path, file_type_info)

    def generate_content_diffs(self, paths) -> List[ContentDiff]:
        """
        Generate content diffs for each path in ``paths``.

        :param paths: Root-relative paths to diff.
        :returns: One ``ContentDiff`` per path, in input order.
        :rtype: ``List[ContentDiff]``
        """
        return [self.generate_content_diff(path) for path in paths]
