#!/usr/bin/env python
"""Generic utils for codesignscript.

Attributes:
    log (logging.Logger): the log object for the module

"""
import asyncio
import fnmatch
import json
import logging
import os
import shutil
import tempfile
from asyncio.subprocess import PIPE

import yaml

from codesignscript.exceptions import ConfigError, FailedSubprocess

log = logging.getLogger(__name__)


# load_json_or_yaml {{{1
def load_json_or_yaml(path, file_type="json"):
    """Load a json or yaml file.

    Args:
        path (str): the file to read
        file_type (str, optional): either "json" or "yaml". Defaults to "json".

    Raises:
        ConfigError: if ``path`` can't be read or parsed

    Returns:
        the parsed contents

    """
    load = json.load if file_type == "json" else yaml.safe_load
    try:
        with open(path, "r") as fh:
            return load(fh)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError("Failed to load {} from {}: {}".format(file_type, path, exc)) from exc


# run_command {{{1
async def _pipe_to_log(pipe, output):
    async for line in pipe:
        line = line.decode("utf-8", errors="replace")
        log.info(line.rstrip())
        output.write(line)


async def run_command(cmd, cwd=None, log_cmd=None):
    """Run a signing tool, logging its output as it arrives.

    There is no timeout; a hung signing tool hangs the run.

    Args:
        cmd (list): the command to run.
        cwd (str, optional): the directory to run ``cmd`` in. If ``None``,
            use ``os.getcwd()``.
        log_cmd (list, optional): what to log instead of ``cmd``, when ``cmd``
            holds a password. Defaults to ``cmd``.

    Raises:
        FailedSubprocess: if ``cmd`` exits non-zero. The message holds the
            command's output.

    """
    cwd = cwd or os.getcwd()
    log_cmd = log_cmd or cmd
    log.info("Running %s in %s ...", log_cmd, cwd)
    proc = await asyncio.create_subprocess_exec(*cmd, stdout=PIPE, stderr=PIPE, stdin=None, start_new_session=True, cwd=cwd)
    with tempfile.TemporaryFile(mode="w+") as output:
        await asyncio.gather(_pipe_to_log(proc.stdout, output), _pipe_to_log(proc.stderr, output))
        exitcode = await proc.wait()
        if exitcode != 0:
            output.seek(0)
            raise FailedSubprocess("{} in {} exited {}!\n{}".format(log_cmd, cwd, exitcode, output.read()))
    log.info("%s in %s exited 0", log_cmd, cwd)


# find_files {{{1
def _walk_files(path):
    # symlinks count as files and aren't followed
    with os.scandir(path) as it:
        for entry in it:
            if entry.is_dir(follow_symlinks=False):
                yield from _walk_files(entry.path)
            else:
                yield entry.path


def find_files(path, patterns):
    """Find the regular files below ``path`` whose basename matches one of ``patterns``.

    Args:
        path (str): the top directory
        patterns (list): ``fnmatch`` patterns, e.g. ``["*.exe", "*.dll"]``

    Returns:
        list: the sorted matching paths.

    """
    return sorted(
        file_
        for file_ in _walk_files(path)
        if os.path.isfile(file_) and not os.path.islink(file_) and any(fnmatch.fnmatch(os.path.basename(file_), pattern) for pattern in patterns)
    )


# makedirs {{{1
def makedirs(path):
    """``mkdir -p path``.

    Raises:
        ConfigError: if ``path`` exists and isn't a directory.

    """
    if path:
        log.debug("makedirs(%s)", path)
        try:
            os.makedirs(os.path.realpath(path), exist_ok=True)
        except OSError as exc:
            raise ConfigError("makedirs: error creating {}: {}".format(path, exc)) from exc


# rm {{{1
def rm(path):
    """``rm -rf path``; a missing ``path`` is fine."""
    if path and os.path.lexists(path):
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
