#!/usr/bin/env python
"""codesignscript signing backends.

Attributes:
    log (logging.Logger): the log object for the module

"""
import asyncio
import logging
import os
import shutil

import aiohttp

from codesignscript.config import get_operating_system, get_sign_tool
from codesignscript.constants import ARCHIVE_SIGNING_TOOLS, OperatingSystem, SignTool
from codesignscript.exceptions import FailedSubprocess, SigningError, TimestampServersExhausted
from codesignscript.utils import find_files, rm, run_command

log = logging.getLogger(__name__)


# per-file signing {{{1
async def _run_sign_command(cmd, path, log_cmd=None):
    await run_command(cmd, cwd=os.path.dirname(path) or None, log_cmd=log_cmd)


async def sign_file_with_signtool(config, path, server):
    """Authenticode-sign ``path`` with the local signtool binary.

    Args:
        config (dict): the running config
        path (str): the file to sign in place
        server (str): the timestamp server url

    Raises:
        FailedSubprocess: on failure

    """
    password = config["sign_password"] or ""
    cmd = [config["sign_tool_path"], "sign", "/f", config["signing_certificate"], "/p", password, "/fd", "SHA256", "/t", server, path]
    log_cmd = [config["sign_tool_path"], "sign", "/f", config["signing_certificate"], "/p", "********", "/fd", "SHA256", "/t", server, path]
    await _run_sign_command(cmd, path, log_cmd=log_cmd)


async def sign_file_with_ucl(config, path, server):
    """Authenticode-sign ``path`` with ``ucl sign-code``."""
    cmd = ["ucl", "sign-code", "--file", path, "-n", config["signing_certificate"], "-t", server, "--hash", "SHA256"]
    await _run_sign_command(cmd, path)


async def sign_file_with_garasign(config, path, server):
    """Authenticode-sign ``path`` with ``garasign sign``."""
    cmd = [
        "garasign",
        "sign",
        "--type",
        "authenticode",
        "--key",
        config["signing_certificate"],
        "--hashAlg",
        "SHA256",
        "--inputFile",
        path,
        "--tsaUrl",
        server,
        "--append",
        "--overwrite",
    ]
    await _run_sign_command(cmd, path)


async def sign_file_with_eclipse(config, session, path):
    """Sign ``path`` with the Eclipse Foundation authenticode service.

    The file is uploaded as ``unsigned_<name>`` and replaced by the response
    body, keeping the original permission bits.

    Args:
        config (dict): the running config
        session (aiohttp.ClientSession): the session to upload with
        path (str): the file to sign in place

    Raises:
        SigningError: on a bad response, or a connection or file error. ``path`` is
            restored to the unsigned file.

    """
    parent_dir, name = os.path.split(path)
    unsigned_path = os.path.join(parent_dir, "unsigned_{}".format(name))
    url = config["eclipse_signing_url"]
    log.info("Signing %s using Eclipse Foundation codesign service", path)
    os.rename(path, unsigned_path)
    try:
        with open(unsigned_path, "rb") as fh:
            data = aiohttp.FormData()
            data.add_field("file", fh, filename=os.path.basename(unsigned_path))
            timeout = aiohttp.ClientTimeout(total=config["eclipse_timeout"])
            async with session.post(url, data=data, timeout=timeout) as resp:
                if resp.status >= 400:
                    log.error("Eclipse signing response: %s, %s", resp.status, await resp.text())
                    raise SigningError("Failed to sign {} at {}: status {}".format(path, url, resp.status))
                signed_bytes = await resp.read()
        with open(path, "wb") as fh:
            fh.write(signed_bytes)
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
        os.replace(unsigned_path, path)
        raise SigningError("Failed to sign {} at {}: {}".format(path, url, exc)) from exc
    except SigningError:
        os.replace(unsigned_path, path)
        raise
    shutil.copymode(unsigned_path, path)
    rm(unsigned_path)


# get_file_signing_function {{{1
def get_file_signing_function(sign_tool):
    """Map a ``SignTool`` to its timestamped per-file signing function.

    Args:
        sign_tool (SignTool): the signing backend

    Raises:
        SigningError: if ``sign_tool`` doesn't sign through timestamp servers

    Returns:
        function: ``func(config, path, server)``

    """
    functions = {
        SignTool.SIGNTOOL: sign_file_with_signtool,
        SignTool.UCL: sign_file_with_ucl,
        SignTool.GARASIGN: sign_file_with_garasign,
    }
    if sign_tool not in functions:
        raise SigningError("{} doesn't sign with timestamp servers!".format(sign_tool))
    return functions[sign_tool]


# sign_with_timestamp_servers {{{1
async def sign_with_timestamp_servers(config, path, sign_func, servers):
    """Sign ``path``, trying each timestamp server in order until one works.

    The first success wins. Each failure sleeps ``timestamp_retry_sleep``
    seconds before the next server is tried.

    Args:
        config (dict): the running config
        path (str): the file to sign
        sign_func (function): ``func(config, path, server)``, raising
            ``FailedSubprocess`` on failure
        servers (list): the timestamp server urls, in order

    Raises:
        TimestampServersExhausted: if no server worked

    Returns:
        str: the server that stamped ``path``

    """
    sleep_time = config["timestamp_retry_sleep"]
    for attempt, server in enumerate(servers, start=1):
        log.info("Signing %s using %s", path, server)
        try:
            await sign_func(config, path, server)
        except FailedSubprocess:
            log.warning("RETRYWARNING: Failed to sign %s: Possible timestamp server error at %s", path, server)
            if attempt < len(servers):
                log.info("Trying new server in %s seconds", sleep_time)
                await asyncio.sleep(sleep_time)
            continue
        return server
    raise TimestampServersExhausted("Failed to sign {} using any time server - aborting".format(path))


# sign_release {{{1
async def sign_release(config, session, top_path, servers):
    """Sign every executable and library below ``top_path``.

    Files are signed one at a time in sorted order; the first file that
    can't be signed aborts the batch.

    Args:
        config (dict): the running config
        session (aiohttp.ClientSession): only used by the eclipse backend
        top_path (str): the extracted top-level directory
        servers (list): the timestamp server urls

    Returns:
        list: the signed paths

    """
    operating_system = get_operating_system(config)
    if operating_system != OperatingSystem.WINDOWS:
        log.info("Skipping code signing as it's not supported on %s", config["operating_system"])
        return []
    log.info("Signing Windows release")
    paths = find_files(top_path, config["signable_patterns"])
    if not paths:
        log.info("No files to sign")
        return []
    sign_tool = get_sign_tool(config)
    for path in paths:
        log.info("Signing %s", path)
        if sign_tool == SignTool.ECLIPSE:
            await sign_file_with_eclipse(config, session, path)
        else:
            await sign_with_timestamp_servers(config, path, get_file_signing_function(sign_tool), servers)
    return paths


# archive signing {{{1
def get_signature_path(archive):
    """Return the detached signature path for ``archive``."""
    return "{}.sig".format(archive)


async def sign_archive_with_ucl(config, archive):
    """Write a detached ``<archive>.sig`` with ``ucl sign``."""
    to = get_signature_path(archive)
    await run_command(
        ["ucl", "sign", "--hash", "SHA256", "-n", config["signing_certificate"], "-i", archive, "-o", to],
        cwd=config["work_dir"],
    )
    return to


async def sign_archive_with_garasign(config, archive):
    """Write a detached ``<archive>.sig`` with ``garasign sign --type cosign``.

    garasign writes ``<archive>.cosign.sig``; rename it.

    """
    to = get_signature_path(archive)
    cosign_path = "{}.cosign.sig".format(archive)
    await run_command(
        [
            "garasign",
            "sign",
            "--type",
            "cosign",
            "--key",
            config["signing_certificate"],
            "--inputFile",
            archive,
            "--outputDirectory",
            config["garasign_output_dir"],
            "--overwrite",
            "--additionalFlags",
            "--b64=false",
        ],
        cwd=config["work_dir"],
    )
    if not os.path.exists(cosign_path):
        raise SigningError("garasign didn't write {}!".format(cosign_path))
    os.replace(cosign_path, to)
    return to


def get_archive_signing_function(sign_tool):
    """Map a ``SignTool`` to its archive signing function, or ``None``."""
    functions = {
        SignTool.UCL: sign_archive_with_ucl,
        SignTool.GARASIGN: sign_archive_with_garasign,
    }
    return functions.get(sign_tool)


def should_sign_archive(operating_system, sign_tool):
    """Only the CLI backends sign whole archives, on supported operating systems."""
    return operating_system is not None and sign_tool in ARCHIVE_SIGNING_TOOLS


async def sign_archive(config, archive):
    """Sign ``archive`` as a whole, if the backend supports it.

    Args:
        config (dict): the running config
        archive (str): the archive path

    Returns:
        str: the detached signature path, or ``None`` if we skipped signing.

    """
    operating_system = get_operating_system(config)
    sign_tool = get_sign_tool(config)
    if not should_sign_archive(operating_system, sign_tool):
        log.info("Skipping code signing of archive %s as %s is unsupported on %s", archive, sign_tool.value, config["operating_system"])
        return None
    log.info("Sign archive %s", archive)
    return await get_archive_signing_function(sign_tool)(config, archive)
