# Copyright Red Hat
#
# tests/__init__.py - debdiff test package
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import logging
import os

log = logging.getLogger()
log.setLevel(logging.DEBUG)
formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
file_handler = logging.FileHandler("test.log")
file_handler.setFormatter(formatter)
console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
log.addHandler(file_handler)
log.addHandler(console_handler)


class MockArgs(object):
    debug = None
    verbose = 0
    version = False
    silent = False
    root = "/"
    overlay = "/usr/share/debdiff"
    ignore_dir = ""
    cpuprofile = ""
    hash_algorithm = "sha256"
    include_alternatives = False
    include_divergent = False
    include_content_diffs = False
    use_magic_file_type = False
    max_content_diff_size = 2**20
    json = False
    pretty = False


def make_tree(base, files):
    """
    Create the files named in ``files`` beneath ``base``.

    :param base: The directory to populate.
    :param files: A mapping of root-relative paths to file content. A
                  ``None`` value creates a directory.
    """
    for path, content in files.items():
        full_path = os.path.join(base, path.lstrip("/"))
        if content is None:
            os.makedirs(full_path, exist_ok=True)
            continue
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        mode = "wb" if isinstance(content, bytes) else "w"
        with open(full_path, mode) as f:
            f.write(content)


def have_root():
    """Return ``True`` if the test suite is running as the root user,
    and ``False`` otherwise.
    """
    return os.geteuid() == 0 and os.getegid() == 0
