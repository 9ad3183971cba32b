#!/usr/bin/env python
"""codesignscript: sign Windows executables and release archives."""
import logging
import os

import aiohttp
import attr

from codesignscript.archive import create_archive, extract_archive, get_top_level_dir, replace_archive
from codesignscript.client import sync_main
from codesignscript.config import (
    check_sign_configuration,
    get_default_config,
    get_operating_system,
    get_sign_tool,
    get_tmp_dir,
    load_timestamp_servers,
)
from codesignscript.constants import TIMESTAMP_SIGNING_TOOLS, OperatingSystem
from codesignscript.exceptions import CodeSignError
from codesignscript.sign import sign_archive, sign_release
from codesignscript.utils import rm

log = logging.getLogger(__name__)


# SigningJob {{{1
@attr.s
class SigningJob(object):
    """Track the paths of a signing run.

    Attributes:
        archive (str): the absolute path of the archive; overwritten in place.
        signing_certificate (str): the certificate path or key name.
        tmp_dir (str): the run's temporary directory.
        top_dir (str): the basename of the archive's top-level directory.
        signed_files (list): the files signed inside the archive.
        signed_archive (str): the repackaged archive, before it replaces ``archive``.
        signature_path (str): the detached signature, if one was written.

    """

    archive = attr.ib(default="")
    signing_certificate = attr.ib(default="")
    tmp_dir = attr.ib(default="")
    top_dir = attr.ib(default="")
    signed_files = attr.ib(factory=list)
    signed_archive = attr.ib(default="")
    signature_path = attr.ib(default=None)

    def check_required_attrs(self, required_attrs):
        """Make sure the ``required_attrs`` are set.

        Args:
            required_attrs (list): list of attribute strings

        Raises:
            CodeSignError: on missing attr

        """
        for att in required_attrs:
            if not getattr(self, att, None):
                raise CodeSignError("Missing {} attr!".format(att))


def get_signing_job(config):
    """Create a ``SigningJob`` from the running config.

    Relative paths are resolved against the cwd here, because the signing
    commands run in other directories. A certificate that isn't an existing
    file is a key name and is left alone.

    """
    certificate = config["signing_certificate"]
    if certificate and os.path.isfile(certificate):
        certificate = os.path.abspath(certificate)
    config["signing_certificate"] = certificate
    config["archive"] = os.path.abspath(config["archive"])
    return SigningJob(archive=config["archive"], signing_certificate=certificate, tmp_dir=get_tmp_dir(config))


# sign_windows_archive {{{1
async def sign_windows_archive(config, session, job):
    """Extract the archive, sign its contents, and repackage it over the original.

    Args:
        config (dict): the running config
        session (aiohttp.ClientSession): the http session for the eclipse backend
        job (SigningJob): the running job

    """
    job.check_required_attrs(["archive", "tmp_dir"])
    await extract_archive(job.archive, job.tmp_dir, OperatingSystem.WINDOWS)
    job.top_dir = get_top_level_dir(job.tmp_dir)
    servers = []
    if get_sign_tool(config) in TIMESTAMP_SIGNING_TOOLS:
        servers = load_timestamp_servers(config)
    job.signed_files = await sign_release(config, session, os.path.join(job.tmp_dir, job.top_dir), servers)
    # The signing host isn't Windows, but the result must still be a zipfile.
    job.signed_archive = await create_archive(job.tmp_dir, job.top_dir, config["signed_archive_name"], OperatingSystem.WINDOWS)
    replace_archive(job.signed_archive, job.archive)


# async_main {{{1
async def async_main(config):
    """Sign all the things.

    Args:
        config (dict): the running config.

    Returns:
        SigningJob: the finished job, or ``None`` if signing was skipped.

    """
    operating_system = get_operating_system(config)
    if operating_system is None:
        log.info("Skipping code signing as it's not supported on %s", config["operating_system"])
        return None
    check_sign_configuration(config)
    job = get_signing_job(config)
    try:
        async with aiohttp.ClientSession() as session:
            if operating_system == OperatingSystem.WINDOWS:
                await sign_windows_archive(config, session, job)
        job.signature_path = await sign_archive(config, job.archive)
    finally:
        rm(job.tmp_dir)
    log.info("Done!")
    return job


def main():
    """Start codesignscript."""
    return sync_main(async_main, default_config=get_default_config())


__name__ == "__main__" and main()
