#!/usr/bin/env python
# coding=utf-8
"""Test helpers
"""
import os
import zipfile


async def noop_async(*args, **kwargs):
    pass


def touch(path, contents="foo"):
    """Create a file, and its parent directories.  Different from the system
    'touch' in that it will overwrite an existing file.
    """
    parent_dir = os.path.dirname(path)
    if parent_dir:
        os.makedirs(parent_dir, exist_ok=True)
    with open(path, "w") as fh:
        print(contents, file=fh, end="")


def make_zipfile(path, files):
    """Write a zipfile at ``path`` containing ``{arcname: contents}``."""
    with zipfile.ZipFile(path, mode="w") as z:
        for arcname, contents in files.items():
            z.writestr(arcname, contents)
    return path
