#!/usr/bin/env python
# coding=utf-8
"""Test codesignscript.archive
"""
import os
import stat
import tarfile
import zipfile

import pytest

import codesignscript.archive as archive
from codesignscript.constants import OperatingSystem
from codesignscript.exceptions import CodeSignError, UnknownArchiveLayout, UnknownArchiveType

from . import make_zipfile, touch


def make_tarball(path, source_dir, top_dir):
    with tarfile.open(path, mode="w:gz") as t:
        t.add(os.path.join(source_dir, top_dir), arcname=top_dir)
    return path


# get_archive_extension {{{1
@pytest.mark.parametrize(
    "operating_system, expected",
    (
        (OperatingSystem.WINDOWS, ".zip"),
        (OperatingSystem.LINUX, ".tar.gz"),
        (OperatingSystem.MAC, ".tar.gz"),
        (OperatingSystem.AIX, ".tar.gz"),
    ),
)
def test_get_archive_extension(operating_system, expected):
    assert archive.get_archive_extension(operating_system) == expected


# extract_archive {{{1
@pytest.mark.asyncio
async def test_extract_archive_zip(tmpdir):
    """Windows archives are unzipped into a freshly wiped ``tmp_dir``."""
    path = make_zipfile(os.path.join(tmpdir, "jdk.zip"), {"jdk-17/bin/java.exe": "exe", "jdk-17/release": "17"})
    tmp_dir = os.path.join(tmpdir, "tmp")
    touch(os.path.join(tmp_dir, "stale"))
    files = await archive.extract_archive(path, tmp_dir, OperatingSystem.WINDOWS)
    assert sorted(os.listdir(tmp_dir)) == ["jdk-17"]
    assert os.path.join(tmp_dir, "jdk-17/bin/java.exe") in files
    with open(os.path.join(tmp_dir, "jdk-17", "release")) as fh:
        assert fh.read() == "17"


@pytest.mark.parametrize("operating_system", (OperatingSystem.LINUX, OperatingSystem.MAC, OperatingSystem.AIX))
@pytest.mark.asyncio
async def test_extract_archive_tarball(tmpdir, operating_system):
    source_dir = os.path.join(tmpdir, "src")
    touch(os.path.join(source_dir, "jdk-17", "bin", "java"))
    path = make_tarball(os.path.join(tmpdir, "jdk.tar.gz"), source_dir, "jdk-17")
    tmp_dir = os.path.join(tmpdir, "tmp")
    await archive.extract_archive(path, tmp_dir, operating_system)
    assert os.path.isfile(os.path.join(tmp_dir, "jdk-17", "bin", "java"))


@pytest.mark.asyncio
async def test_extract_archive_unknown_type(tmpdir):
    with pytest.raises(UnknownArchiveType):
        await archive.extract_archive(os.path.join(tmpdir, "jdk.zip"), os.path.join(tmpdir, "tmp"), None)


@pytest.mark.asyncio
async def test_extract_archive_corrupt(tmpdir):
    path = os.path.join(tmpdir, "jdk.zip")
    touch(path, "not a zipfile")
    with pytest.raises(CodeSignError):
        await archive.extract_archive(path, os.path.join(tmpdir, "tmp"), OperatingSystem.WINDOWS)


# get_top_level_dir {{{1
@pytest.mark.parametrize(
    "entries, expected",
    (
        (["jdk-17.0.2+8/bin/java.exe"], "jdk-17.0.2+8"),
        ([], None),
        (["jdk-17/bin/java.exe", "jdk-17-debug/bin/java.pdb"], None),
        (["README"], None),
    ),
)
def test_get_top_level_dir(tmpdir, entries, expected):
    tmp_dir = os.path.join(tmpdir, "tmp")
    os.makedirs(tmp_dir)
    for entry in entries:
        touch(os.path.join(tmp_dir, entry))
    if expected is None:
        with pytest.raises(UnknownArchiveLayout):
            archive.get_top_level_dir(tmp_dir)
    else:
        assert archive.get_top_level_dir(tmp_dir) == expected


# create_archive {{{1
@pytest.mark.asyncio
async def test_create_archive_zip_round_trip(tmpdir):
    """Extracting then repackaging keeps the top-level directory name."""
    path = make_zipfile(
        os.path.join(tmpdir, "in.zip"),
        {"jdk-17.0.2+8/bin/java.exe": "exe", "jdk-17.0.2+8/bin/server/jvm.dll": "dll", "jdk-17.0.2+8/release": "17"},
    )
    tmp_dir = os.path.join(tmpdir, "tmp")
    await archive.extract_archive(path, tmp_dir, OperatingSystem.WINDOWS)
    top_dir = archive.get_top_level_dir(tmp_dir)
    to = await archive.create_archive(tmp_dir, top_dir, "OpenJDK", OperatingSystem.WINDOWS)
    assert to == os.path.join(tmp_dir, "OpenJDK.zip")
    with zipfile.ZipFile(to) as z:
        names = z.namelist()
    assert {name.split("/")[0] for name in names} == {"jdk-17.0.2+8"}
    assert "jdk-17.0.2+8/bin/server/jvm.dll" in names


@pytest.mark.asyncio
async def test_create_archive_zip_keeps_modes_and_empty_dirs(tmpdir):
    """Unix permission bits and empty directories survive extract + repackage."""
    path = os.path.join(tmpdir, "in.zip")
    with zipfile.ZipFile(path, mode="w") as z:
        exe = zipfile.ZipInfo("jdk-17/bin/java.exe")
        exe.external_attr = (stat.S_IFREG | 0o755) << 16
        z.writestr(exe, "exe")
        z.writestr(zipfile.ZipInfo("jdk-17/conf/sdp/"), "")
    tmp_dir = os.path.join(tmpdir, "tmp")
    await archive.extract_archive(path, tmp_dir, OperatingSystem.WINDOWS)
    assert stat.S_IMODE(os.stat(os.path.join(tmp_dir, "jdk-17", "bin", "java.exe")).st_mode) == 0o755
    assert os.path.isdir(os.path.join(tmp_dir, "jdk-17", "conf", "sdp"))
    top_dir = archive.get_top_level_dir(tmp_dir)
    to = await archive.create_archive(tmp_dir, top_dir, "OpenJDK", OperatingSystem.WINDOWS)
    with zipfile.ZipFile(to) as z:
        names = z.namelist()
        exe_mode = stat.S_IMODE(z.getinfo("jdk-17/bin/java.exe").external_attr >> 16)
    assert "jdk-17/conf/sdp/" in names
    assert exe_mode == 0o755


@pytest.mark.asyncio
async def test_create_archive_tarball(tmpdir):
    """Tarballs keep the top-level directory and are owned by root."""
    touch(os.path.join(tmpdir, "jdk-17", "bin", "java"))
    to = await archive.create_archive(str(tmpdir), "jdk-17", "OpenJDK", OperatingSystem.LINUX)
    assert to == os.path.join(tmpdir, "OpenJDK.tar.gz")
    with tarfile.open(to, mode="r:gz") as t:
        members = t.getmembers()
    assert {member.name.split("/")[0] for member in members} == {"jdk-17"}
    assert "jdk-17/bin/java" in [member.name for member in members]
    assert {(member.uid, member.gid, member.uname, member.gname) for member in members} == {(0, 0, "", "")}


@pytest.mark.asyncio
async def test_create_archive_missing_dir(tmpdir):
    with pytest.raises(CodeSignError):
        await archive.create_archive(str(tmpdir), "missing", "OpenJDK", OperatingSystem.WINDOWS)


# replace_archive {{{1
def test_replace_archive(tmpdir):
    signed = os.path.join(tmpdir, "tmp", "OpenJDK.zip")
    orig = os.path.join(tmpdir, "jdk.zip")
    touch(signed, "signed")
    touch(orig, "unsigned")
    archive.replace_archive(signed, orig)
    assert not os.path.exists(signed)
    with open(orig) as fh:
        assert fh.read() == "signed"


def test_replace_archive_missing(tmpdir):
    with pytest.raises(CodeSignError):
        archive.replace_archive(os.path.join(tmpdir, "missing.zip"), os.path.join(tmpdir, "jdk.zip"))
