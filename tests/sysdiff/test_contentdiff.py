# Copyright Red Hat
#
# tests/sysdiff/test_contentdiff.py - Content diff tests.
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
from unittest.mock import patch
from pathlib import Path
import tempfile
import os

from debdiff.sysdiff.contentdiff import (
    BinaryContentDiffer,
    ContentDiff,
    ContentDifferBase,
    ContentDifferManager,
    TextContentDiffer,
)
from debdiff.sysdiff.filetypes import FileTypeCategory, FileTypeInfo
from debdiff.sysdiff.options import DiffOptions

from tests import make_tree


class TestContentDiff(unittest.TestCase):
    def test_ContentDiff__str__(self):
        cd = ContentDiff("/etc/hosts", "unified", summary="1 deletions, 1 additions")
        s = str(cd)
        self.assertIn("path: /etc/hosts", s)
        self.assertIn("diff_type: unified", s)

    def test_render_error(self):
        cd = ContentDiff("/etc/shadow", "unified")
        cd.error_message = "Permission denied"
        self.assertEqual(cd.render(), "Could not diff /etc/shadow: Permission denied\n")

    def test_render_summary(self):
        cd = ContentDiff("/var/big", "summary", summary="too big")
        self.assertEqual(cd.render(), "Files a/var/big and b/var/big differ (too big)\n")

    def test_render_unified_adds_newlines(self):
        cd = ContentDiff("/a", "unified")
        cd.diff_data = ["--- a/a\n", "+++ b/a\n", "@@ -1 +1 @@\n", "-x", "+y"]
        self.assertTrue(cd.render().endswith("-x\n+y\n"))


class TestContentDiffers(unittest.TestCase):
    def setUp(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.base = tmpdir.name
        self.text_info = FileTypeInfo(
            "text/plain", "text", FileTypeCategory.TEXT, "utf-8"
        )
        self.binary_info = FileTypeInfo(
            "application/octet-stream", "data", FileTypeCategory.BINARY, "binary"
        )

    def test_text_differ(self):
        make_tree(self.base, {"/old": "a\nb\n", "/new": "a\nc\nd\n"})
        differ = TextContentDiffer()
        self.assertTrue(differ.can_handle(self.text_info))
        self.assertFalse(differ.can_handle(self.binary_info))
        cd = differ.generate_diff(
            "/etc/x",
            Path(self.base, "old"),
            Path(self.base, "new"),
            self.text_info,
        )
        self.assertTrue(cd.has_changes)
        self.assertEqual(cd.summary, "1 deletions, 2 additions")
        self.assertEqual(cd.diff_data[0], "--- a/etc/x\n")

    def test_text_differ_missing_side(self):
        make_tree(self.base, {"/old": "a\n"})
        cd = TextContentDiffer().generate_diff(
            "/etc/x",
            Path(self.base, "old"),
            Path(self.base, "missing"),
            self.text_info,
        )
        self.assertEqual(cd.summary, "1 deletions, 0 additions")

    def test_text_differ_read_error(self):
        make_tree(self.base, {"/old": "a\n", "/new": "b\n"})
        with patch(
            "debdiff.sysdiff.contentdiff._read_lines",
            side_effect=PermissionError(13, "Permission denied"),
        ):
            cd = TextContentDiffer().generate_diff(
                "/etc/x", Path(self.base, "old"), Path(self.base, "new"), self.text_info
            )
        self.assertIn("Permission denied", cd.error_message)

    def test_binary_differ(self):
        make_tree(self.base, {"/old": b"\x00" * 10, "/new": b"\x01" * 14})
        differ = BinaryContentDiffer()
        cd = differ.generate_diff(
            "/usr/lib/x.so",
            Path(self.base, "old"),
            Path(self.base, "new"),
            self.binary_info,
        )
        self.assertEqual(cd.diff_type, "binary")
        self.assertEqual(cd.summary, "data: size changed by +4 bytes")
        self.assertGreater(differ.priority, -1)


class TestContentDifferManager(unittest.TestCase):
    def setUp(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = os.path.join(tmpdir.name, "root")
        self.overlay = os.path.join(tmpdir.name, "overlay")
        os.makedirs(self.root)
        os.makedirs(self.overlay)

    def manager(self, **kwargs):
        return ContentDifferManager(
            DiffOptions(root=self.root, overlay=self.overlay, **kwargs)
        )

    def test_differ_priority(self):
        manager = self.manager()
        self.assertIsInstance(manager.differs[0], TextContentDiffer)

        class CustomDiffer(ContentDifferBase):
            def can_handle(self, file_type_info):
                return True

            def generate_diff(self, path, old_path, new_path, file_type_info):
                return ContentDiff(path, "custom")

            @property
            def priority(self):
                return 100

        manager.register_differ(CustomDiffer())
        self.assertIsInstance(manager.differs[0], CustomDiffer)

    def test_text_file_diff(self):
        make_tree(self.root, {"/etc/hosts": "127.0.0.1 localhost\n"})
        make_tree(self.overlay, {"/etc/hosts": "127.0.0.1 localhost myhost\n"})
        cd = self.manager().generate_content_diff("/etc/hosts")
        self.assertEqual(cd.diff_type, "unified")
        self.assertIn("+127.0.0.1 localhost\n", cd.diff_data)

    def test_binary_file_diff(self):
        make_tree(self.root, {"/usr/lib/libx.so": b"\x7fELF\x01"})
        make_tree(self.overlay, {"/usr/lib/libx.so": b"\x7fELF\x02"})
        cd = self.manager().generate_content_diff("/usr/lib/libx.so")
        self.assertEqual(cd.diff_type, "binary")

    def test_oversized_file(self):
        make_tree(self.root, {"/etc/big.conf": "x" * 100})
        make_tree(self.overlay, {"/etc/big.conf": "y"})
        cd = self.manager(max_content_diff_size=10).generate_content_diff(
            "/etc/big.conf"
        )
        self.assertEqual(cd.diff_type, "summary")
        self.assertIn("exceeds maximum diff size of 10 bytes", cd.summary)

    @patch("debdiff.sysdiff.filetypes.magic.detect_from_filename")
    def test_magic_reads_installed_copy(self, mock_magic):
        mock_magic.return_value.mime_type = "text/plain"
        mock_magic.return_value.name = "ASCII text"
        mock_magic.return_value.encoding = "us-ascii"
        make_tree(self.root, {"/srv/data": "new\n"})
        make_tree(self.overlay, {"/srv/data": "old\n"})
        cd = self.manager(use_magic_file_type=True).generate_content_diff("/srv/data")
        mock_magic.assert_called_once_with(os.path.join(self.root, "srv/data"))
        self.assertEqual(cd.diff_type, "unified")

    def test_generate_content_diffs(self):
        make_tree(self.root, {"/etc/a.conf": "1\n", "/etc/b.conf": "2\n"})
        diffs = self.manager().generate_content_diffs(["/etc/a.conf", "/etc/b.conf"])
        self.assertEqual([cd.path for cd in diffs], ["/etc/a.conf", "/etc/b.conf"])
        self.assertTrue(all(cd.has_changes for cd in diffs))
