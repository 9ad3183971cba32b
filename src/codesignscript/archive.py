#!/usr/bin/env python
"""codesignscript archive extraction and repackaging.

Attributes:
    log (logging.Logger): the log object for the module

"""
import logging
import os
import shutil
import tarfile
import zipfile

from codesignscript.constants import OperatingSystem
from codesignscript.exceptions import CodeSignError, UnknownArchiveLayout, UnknownArchiveType
from codesignscript.utils import makedirs, rm

log = logging.getLogger(__name__)

_TARBALL_OPERATING_SYSTEMS = (OperatingSystem.AIX, OperatingSystem.LINUX, OperatingSystem.MAC)


# get_archive_extension {{{1
def get_archive_extension(operating_system):
    """Return the archive extension we create for ``operating_system``.

    Args:
        operating_system (OperatingSystem): the target operating system

    Returns:
        str: ``.zip`` or ``.tar.gz``

    """
    if operating_system == OperatingSystem.WINDOWS:
        return ".zip"
    return ".tar.gz"


# _extract_zipfile {{{1
def _extract_zipfile(from_, tmp_dir):
    dir_modes = []
    with zipfile.ZipFile(from_, mode="r") as z:
        for info in z.infolist():
            path = z.extract(info, path=tmp_dir)
            # unix permission bits, when the zip was made on unix
            mode = info.external_attr >> 16 & 0o7777
            if not mode:
                continue
            if info.is_dir():
                dir_modes.append((path, mode))
            else:
                os.chmod(path, mode)
        # directories last, so a read-only one doesn't block its contents
        for path, mode in dir_modes:
            os.chmod(path, mode)
        return [os.path.join(tmp_dir, name) for name in z.namelist()]


# _extract_tarfile {{{1
def _extract_tarfile(from_, tmp_dir):
    with tarfile.open(from_, mode="r:gz") as t:
        t.extractall(path=tmp_dir, filter="data")
        return [os.path.join(tmp_dir, name) for name in t.getnames()]


# extract_archive {{{1
async def extract_archive(archive, tmp_dir, operating_system):
    """Wipe ``tmp_dir`` and extract ``archive`` into it.

    Windows archives are zipfiles; aix, linux and mac archives are gzipped
    tarballs.

    Args:
        archive (str): the path to the archive
        tmp_dir (str): the directory to extract into. It doesn't have to exist.
        operating_system (OperatingSystem): the operating system the archive
            was built for. ``None`` for an unsupported one.

    Raises:
        UnknownArchiveType: if we don't know the archive type for ``operating_system``
        CodeSignError: if the archive can't be extracted

    Returns:
        list: the extracted paths

    """
    rm(tmp_dir)
    makedirs(tmp_dir)
    if operating_system == OperatingSystem.WINDOWS:
        extract = _extract_zipfile
    elif operating_system in _TARBALL_OPERATING_SYSTEMS:
        extract = _extract_tarfile
    else:
        raise UnknownArchiveType("could not detect archive type for {}".format(operating_system))
    log.info("Extracting %s to %s...", archive, tmp_dir)
    try:
        return extract(archive, tmp_dir)
    except (OSError, zipfile.BadZipFile, tarfile.TarError) as exc:
        raise CodeSignError("Can't extract {}: {}".format(archive, exc)) from exc


# get_top_level_dir {{{1
def get_top_level_dir(tmp_dir):
    """Get the single top-level directory from an extracted archive.

    Args:
        tmp_dir (str): the directory the archive was extracted into

    Raises:
        UnknownArchiveLayout: if there isn't exactly one top-level directory

    Returns:
        str: the basename of the top-level directory

    """
    entries = sorted(os.listdir(tmp_dir))
    if len(entries) != 1 or not os.path.isdir(os.path.join(tmp_dir, entries[0])):
        raise UnknownArchiveLayout("Can't find a single top-level directory in {}: {}".format(tmp_dir, entries))
    return entries[0]


# _owner_filter {{{1
def _owner_filter(tarinfo_obj):
    """Force file ownership to be root."""
    tarinfo_obj.uid = 0
    tarinfo_obj.gid = 0
    tarinfo_obj.uname = ""
    tarinfo_obj.gname = ""
    return tarinfo_obj


def _create_zipfile(to, top_dir, parent_dir):
    top_path = os.path.join(parent_dir, top_dir)
    with zipfile.ZipFile(to, mode="w", compression=zipfile.ZIP_DEFLATED) as z:
        z.write(top_path, arcname=top_dir)
        for root, dirs, files in os.walk(top_path):
            dirs.sort()
            # empty directories need their own entries
            for name in dirs:
                path = os.path.join(root, name)
                z.write(path, arcname=os.path.relpath(path, parent_dir))
            for name in sorted(files):
                path = os.path.join(root, name)
                z.write(path, arcname=os.path.relpath(path, parent_dir))


def _create_tarfile(to, top_dir, parent_dir):
    with tarfile.open(to, mode="w:gz") as t:
        t.add(os.path.join(parent_dir, top_dir), arcname=top_dir, filter=_owner_filter)


# create_archive {{{1
async def create_archive(parent_dir, top_dir, name, operating_system):
    """Package ``parent_dir/top_dir`` into ``parent_dir/<name><extension>``.

    Paths inside the archive start with ``top_dir``, so the top-level
    directory name survives the round trip.

    Args:
        parent_dir (str): the directory containing ``top_dir``
        top_dir (str): the basename of the directory to package
        name (str): the archive basename, without extension
        operating_system (OperatingSystem): decides zip vs tarball

    Raises:
        CodeSignError: on failure

    Returns:
        str: the path to the new archive

    """
    to = os.path.join(parent_dir, "{}{}".format(name, get_archive_extension(operating_system)))
    log.info("Creating %s from %s...", to, top_dir)
    try:
        if operating_system == OperatingSystem.WINDOWS:
            _create_zipfile(to, top_dir, parent_dir)
        else:
            _create_tarfile(to, top_dir, parent_dir)
    except (OSError, zipfile.BadZipFile, tarfile.TarError) as exc:
        raise CodeSignError("Can't create {}: {}".format(to, exc)) from exc
    return to


# replace_archive {{{1
def replace_archive(signed_archive, archive):
    """Move ``signed_archive`` over ``archive``."""
    log.info("Moving %s to %s", signed_archive, archive)
    try:
        shutil.move(signed_archive, archive)
    except OSError as exc:
        raise CodeSignError("Can't move {} to {}: {}".format(signed_archive, archive, exc)) from exc
