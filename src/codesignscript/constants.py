#!/usr/bin/env python
"""codesignscript constants.

Attributes:
    STATUSES (dict): maps task status (string) to exit code (int).

"""
from enum import Enum

# These mirror ``scriptworker_client.constants.STATUSES``.
STATUSES = {
    "success": 0,
    "failure": 1,
}


class OperatingSystem(Enum):
    """Operating systems we know how to handle archives for."""

    WINDOWS = "windows"
    MAC = "mac"
    LINUX = "linux"
    AIX = "aix"


class SignTool(Enum):
    """Signing backends."""

    SIGNTOOL = "signtool"
    UCL = "ucl"
    GARASIGN = "garasign"
    ECLIPSE = "eclipse"


# The CLI backends also sign the archive as a whole, writing ``<archive>.sig``.
ARCHIVE_SIGNING_TOOLS = (SignTool.UCL, SignTool.GARASIGN)

# Timestamp server backends take a ``--tsaUrl``-style argument; eclipse doesn't.
TIMESTAMP_SIGNING_TOOLS = (SignTool.SIGNTOOL, SignTool.UCL, SignTool.GARASIGN)

DEFAULT_SIGN_TOOL_PATH = "/cygdrive/c/Program Files (x86)/Windows Kits/10/bin/10.0.17763.0/x64/signtool.exe"
ECLIPSE_SIGNING_URL = "https://cbi.eclipse.org/authenticode/sign"
TIMESTAMP_SERVER_CONFIG = "serverTimestamp.properties"

# Environment variable -> config key
ENV_CONFIG = {
    "OPERATING_SYSTEM": "operating_system",
    "SIGN_TOOL": "sign_tool",
    "SIGN_PASSWORD": "sign_password",
    "signToolPath": "sign_tool_path",
}
