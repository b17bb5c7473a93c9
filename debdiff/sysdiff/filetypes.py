# Copyright Red Hat
#
# debdiff/sysdiff/filetypes.py - System diff file types
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
File type information support.
"""
from typing import ClassVar, Dict, Optional, Tuple
from fnmatch import fnmatch
from pathlib import Path
from enum import Enum
import logging
import magic

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


# Format: ".ext": ("mime/type", "description starting with lowercase")
TEXT_EXTENSION_MAP = {
    ".txt": ("text/plain", "plain text document"),
    ".md": ("text/markdown", "markdown documentation"),
    ".json": ("application/json", "json data file"),
    ".xml": ("application/xml", "xml document"),
    ".yaml": ("application/yaml", "yaml configuration file"),
    ".yml": ("application/yaml", "yaml configuration file"),
    ".toml": ("application/toml", "toml configuration file"),
    ".ini": ("text/x-ini", "ini configuration file"),
    ".cfg": ("text/x-config", "configuration file"),
    ".conf": ("text/x-config", "configuration file"),
    ".cnf": ("text/x-config", "configuration file"),
    ".rules": ("text/x-config", "rules file"),
    ".list": ("text/plain", "list file"),
    ".sources": ("text/x-config", "apt sources file"),
    ".pref": ("text/x-config", "apt preferences file"),
    ".log": ("text/x-log", "log file"),
    ".service": ("text/plain", "systemd service unit file"),
    ".socket": ("text/plain", "systemd socket unit file"),
    ".timer": ("text/plain", "systemd timer unit file"),
    ".mount": ("text/plain", "systemd mount unit file"),
    ".target": ("text/plain", "systemd target unit file"),
    ".network": ("text/plain", "systemd network configuration file"),
    ".sh": ("text/x-shellscript", "shell script"),
    ".bash": ("text/x-shellscript", "bash script"),
    ".py": ("text/x-python", "python script"),
    ".pl": ("text/x-perl", "perl script"),
    ".pem": ("application/x-pem-file", "pem certificate or key"),
    ".crt": ("application/x-x509-ca-cert", "x509 certificate"),
}

# Format: "pattern": ("mime/type", "description starting with lowercase")
TEXT_FILENAME_MAP = {
    "*fstab": ("text/plain", "static file system information"),
    "*crontab": ("text/plain", "cron table"),
    "*hosts": ("text/plain", "static host name table"),
    "*hostname": ("text/plain", "system host name"),
    "*passwd": ("text/plain", "user account database"),
    "*group": ("text/plain", "group account database"),
    "*sudoers": ("text/plain", "sudo policy"),
    "*motd": ("text/plain", "message of the day"),
    "*issue": ("text/plain", "login banner message"),
}

BINARY_EXTENSION_MAP = {
    ".so": ("application/x-sharedlib", "shared library"),
    ".o": ("application/x-object", "object file"),
    ".gz": ("application/gzip", "gzip compressed data"),
    ".xz": ("application/x-xz", "xz compressed data"),
    ".zst": ("application/zstd", "zstandard compressed data"),
    ".gpg": ("application/pgp-keys", "openpgp keyring"),
    ".db": ("application/x-sqlite3", "database file"),
    ".png": ("image/png", "png image"),
    ".jpg": ("image/jpeg", "jpeg image"),
    ".mo": ("application/x-gettext-translation", "gettext message catalog"),
}

#: Root-relative directory prefixes holding compiled binaries.
BINARY_DIRS = (
    "/bin/",
    "/sbin/",
    "/lib/",
    "/lib64/",
    "/usr/bin/",
    "/usr/sbin/",
    "/usr/lib/",
    "/usr/libexec/",
)


class FileTypeCategory(Enum):
    """
    Enum for file type categories.
    """

    TEXT = "text"
    BINARY = "binary"
    IMAGE = "image"
    ARCHIVE = "archive"
    EXECUTABLE = "executable"
    CONFIG = "config"
    LOG = "log"
    DATABASE = "database"
    SOURCE_CODE = "source_code"
    CERTIFICATE = "certificate"
    UNKNOWN = "unknown"


class FileTypeInfo:
    """
    Class representing file type information and encoding.
    """

    def __init__(
        self,
        mime_type: str,
        description: str,
        category: FileTypeCategory,
        encoding: Optional[str] = None,
    ):
        """
        Initialise a new ``FileTypeInfo`` object.

        :param mime_type: The detected MIME type.
        :type mime_type: ``str``
        :param description: Type description.
        :type description: ``str``
        :param category: File type category.
        :type category: ``FileTypeCategory``
        :param encoding: Optional file encoding.
        :type encoding: ``Optional[str]``
        """
        self.mime_type = mime_type
        self.description = description
        self.category = category
        self.encoding = encoding
        self.is_text_like = category in (
            FileTypeCategory.TEXT,
            FileTypeCategory.CONFIG,
            FileTypeCategory.LOG,
            FileTypeCategory.SOURCE_CODE,
            FileTypeCategory.CERTIFICATE,
        )

    def __str__(self):
        return (
            f"MIME type: {self.mime_type}, "
            f"Category: {self.category.value}, "
            f"Encoding: {self.encoding if self.encoding else 'unknown'}, "
            f"Description: {self.description}"
        )


def _guess_file(logical_path: Path) -> Tuple[str, str, Optional[str]]:
    """
    Guess a file's MIME type, description and encoding from its name.

    :param logical_path: The root-relative path of the file.
    :type logical_path: ``Path``
    :returns: A 3-tuple containing (mime_type, description, encoding).
    :rtype: ``Tuple[str, str, Optional[str]]``
    """
    name = logical_path.name.lower()
    suffix = logical_path.suffix.lower()

    if suffix in BINARY_EXTENSION_MAP:
        return (*BINARY_EXTENSION_MAP[suffix], "binary")
    if str(logical_path).startswith(BINARY_DIRS):
        return ("application/x-executable", "executable", "binary")
    if suffix in TEXT_EXTENSION_MAP:
        return (*TEXT_EXTENSION_MAP[suffix], "utf-8")
    for pattern, guess in TEXT_FILENAME_MAP.items():
        if fnmatch(name, pattern):
            return (*guess, "utf-8")
    if str(logical_path).startswith("/etc/"):
        return ("text/plain", "configuration file", "utf-8")

    return ("application/octet-stream", "unknown file type", "binary")


class FileTypeDetector:
    """
    Detect file types using ``magic`` from python3-file-magic, or from the
    file name and location.
    """

    # fmt: off
    category_rules: ClassVar[Dict[str, FileTypeCategory]] = {
        "application/gzip": FileTypeCategory.ARCHIVE,
        "application/x-xz": FileTypeCategory.ARCHIVE,
        "application/zstd": FileTypeCategory.ARCHIVE,
        "application/x-tar": FileTypeCategory.ARCHIVE,
        "application/x-executable": FileTypeCategory.EXECUTABLE,
        "application/x-sharedlib": FileTypeCategory.EXECUTABLE,
        "application/x-pie-executable": FileTypeCategory.EXECUTABLE,
        "application/x-object": FileTypeCategory.EXECUTABLE,
        "application/json": FileTypeCategory.CONFIG,
        "application/xml": FileTypeCategory.CONFIG,
        "application/yaml": FileTypeCategory.CONFIG,
        "application/toml": FileTypeCategory.CONFIG,
        "text/x-ini": FileTypeCategory.CONFIG,
        "text/x-config": FileTypeCategory.CONFIG,
        "application/x-sqlite3": FileTypeCategory.DATABASE,
        "application/x-x509-ca-cert": FileTypeCategory.CERTIFICATE,
        "application/x-pem-file": FileTypeCategory.CERTIFICATE,
        "text/x-shellscript": FileTypeCategory.SOURCE_CODE,
        "text/x-python": FileTypeCategory.SOURCE_CODE,
        "text/x-perl": FileTypeCategory.SOURCE_CODE,
        "text/x-log": FileTypeCategory.LOG,
        "inode/x-empty": FileTypeCategory.TEXT,
        "text/": FileTypeCategory.TEXT,
        "image/": FileTypeCategory.IMAGE,
    }
    # fmt: on

    def detect_file_type(
        self,
        file_path: Path,
        use_magic: bool = False,
        logical_path: Optional[Path] = None,
    ) -> FileTypeInfo:
        """
        Detect file type information, optionally using libmagic for MIME
        type detection.

        :param file_path: The location of the file to inspect.
        :type file_path: ``Path``
        :param use_magic: Inspect the file content with libmagic.
        :type use_magic: ``bool``
        :param logical_path: The root-relative path of the file, used for
                             name and location based rules. Defaults to
                             ``file_path``.
        :type logical_path: ``Optional[Path]``
        :returns: File type information for ``file_path``.
        :rtype: ``FileTypeInfo``
        """
        logical_path = logical_path or file_path
        if not use_magic:
            mime_type, description, encoding = _guess_file(logical_path)
            category = self._categorize_file(mime_type, logical_path)
            return FileTypeInfo(mime_type, description, category, encoding)

        # c9s magic does not have magic.error
        if hasattr(magic, "error"):
            magic_errors = (magic.error, OSError, ValueError)
        else:
            magic_errors = (OSError, ValueError)

        try:
            fm = magic.detect_from_filename(str(file_path))
        except magic_errors as err:
            _log_warn("Error detecting file type for %s: %s", str(file_path), err)
            return FileTypeInfo(
                "application/octet-stream", "unknown", FileTypeCategory.UNKNOWN
            )
        category = self._categorize_file(fm.mime_type, logical_path)
        return FileTypeInfo(fm.mime_type, fm.name, category, fm.encoding)

    def _categorize_file(self, mime_type: str, logical_path: Path) -> FileTypeCategory:
        """
        Categorize a file based on MIME type and location.

        :param mime_type: Detected file MIME type.
        :type mime_type: ``str``
        :param logical_path: Root-relative path of the file.
        :type logical_path: ``Path``
        :returns: File type categorization.
        :rtype: ``FileTypeCategory``
        """
        mime_type = mime_type.lower()
        path_str = str(logical_path).lower()
        binary_mime = not (
            mime_type.startswith("text/") or mime_type == "inode/x-empty"
        )
        if "/log/" in path_str or path_str.endswith(".log"):
            return FileTypeCategory.BINARY if binary_mime else FileTypeCategory.LOG
        if path_str.startswith("/etc/") and mime_type in (
            "text/plain",
            "inode/x-empty",
        ):
            return FileTypeCategory.CONFIG

        for pattern, category in self.category_rules.items():
            if mime_type.startswith(pattern):
                return category

        return FileTypeCategory.BINARY
