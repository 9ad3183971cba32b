import os

import pytest
from aioresponses import aioresponses

from codesignscript.config import get_default_config

from . import touch


@pytest.fixture
def responses():
    with aioresponses() as rsps:
        yield rsps


@pytest.fixture(scope="function")
def config(tmpdir):
    work_dir = str(tmpdir)
    config = get_default_config(base_dir=work_dir)
    config.update(
        {
            "operating_system": "windows",
            "signing_certificate": os.path.join(work_dir, "cert.pfx"),
            "archive": os.path.join(work_dir, "OpenJDK17U-jdk_x64_windows.zip"),
            "sign_password": "secret",
            "timestamp_retry_sleep": 0,
        }
    )
    touch(config["signing_certificate"])
    return config
