#!/usr/bin/env python
"""Config for codesignscript.

The running config is built in layers: ``get_default_config``, then the
optional ``--config`` file, then the environment, then the commandline.

Attributes:
    log (logging.Logger): the log object for the module.

"""
import argparse
import logging
import os
import platform

import jsonschema

from codesignscript.constants import (
    DEFAULT_SIGN_TOOL_PATH,
    ECLIPSE_SIGNING_URL,
    ENV_CONFIG,
    TIMESTAMP_SERVER_CONFIG,
    OperatingSystem,
    SignTool,
)
from codesignscript.exceptions import ConfigError
from codesignscript.utils import load_json_or_yaml

log = logging.getLogger(__name__)

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")

_PLATFORM_TO_OS = {
    "windows": OperatingSystem.WINDOWS.value,
    "cygwin": OperatingSystem.WINDOWS.value,
    "darwin": OperatingSystem.MAC.value,
    "linux": OperatingSystem.LINUX.value,
    "aix": OperatingSystem.AIX.value,
}


# get_default_config {{{1
def get_default_config(base_dir=None):
    """Create the default config to work from.

    Args:
        base_dir (str, optional): the workspace directory; ``tmp/`` and
            ``serverTimestamp.properties`` live here. If None, use the
            current working directory.  Defaults to None.

    Returns:
        dict: the default configuration dict.

    """
    base_dir = base_dir or os.getcwd()
    default_config = {
        "work_dir": base_dir,
        "tmp_dir_name": "tmp",
        "operating_system": detect_operating_system(),
        "sign_tool": SignTool.SIGNTOOL.value,
        "sign_password": None,
        "sign_tool_path": DEFAULT_SIGN_TOOL_PATH,
        "schema_file": os.path.join(DATA_DIR, "config_schema.json"),
        "timestamp_server_config": TIMESTAMP_SERVER_CONFIG,
        "timestamp_retry_sleep": 2,
        "eclipse_signing_url": ECLIPSE_SIGNING_URL,
        "eclipse_timeout": 600,
        "garasign_output_dir": "workspace/target/",
        "signed_archive_name": "OpenJDK",
        "signable_patterns": ["*.exe", "*.dll"],
        "verbose": False,
    }
    return default_config


def detect_operating_system(system=None):
    """Map ``platform.system()`` to our operating system names.

    Unknown systems are passed through lowercased, so they can be skipped later.

    """
    system = (system or platform.system()).lower()
    if system.startswith("cygwin") or system.startswith("mingw") or system.startswith("msys"):
        system = "cygwin"
    return _PLATFORM_TO_OS.get(system, system)


# get_parser {{{1
def get_parser(desc=None):
    """Create the codesignscript argparse parser.

    The signing certificate and archive aren't defined here; they're always
    the last two commandline args, see ``parse_args``.

    Args:
        desc (str, optional): the description for the parser.

    Returns:
        argparse.ArgumentParser: the parser.

    """
    # No abbreviations: build flags like ``--sign`` must not match ``--sign-tool``.
    parser = argparse.ArgumentParser(
        description=desc, usage="%(prog)s [options] [build args...] signing_certificate archive", allow_abbrev=False
    )
    parser.add_argument("--config", dest="config_path", type=str, help="a yaml or json config file")
    parser.add_argument("--work-dir", type=str, help="the workspace directory, defaults to the cwd")
    parser.add_argument("--operating-system", type=str, help="the target operating system")
    parser.add_argument("--sign-tool", type=str, help="one of {}".format(", ".join(t.value for t in SignTool)))
    parser.add_argument("--sign-tool-path", type=str, help="the path to the local signtool binary")
    parser.add_argument("--verbose", action="store_true", default=None, help="log at debug level")
    return parser


def parse_args(parser, commandline_args):
    """Split ``commandline_args`` into options and the two trailing paths.

    Args:
        parser (argparse.ArgumentParser): the parser for the options
        commandline_args (list): the commandline args, usually ``sys.argv[1:]``

    Returns:
        argparse.Namespace: the parsed args. ``ignored_args`` holds anything
            the parser didn't recognize.

    Raises:
        ConfigError: if the certificate or archive is missing.

    """
    if len(commandline_args) < 2:
        raise ConfigError("the signing certificate and archive paths are required")
    parsed_args, ignored_args = parser.parse_known_args(commandline_args[:-2])
    parsed_args.signing_certificate, parsed_args.archive = commandline_args[-2:]
    parsed_args.ignored_args = ignored_args
    return parsed_args


# init_config {{{1
def init_config(parsed_args, default_config=None, environ=None):
    """Build the running config from defaults, config file, environment and args.

    Args:
        parsed_args (argparse.Namespace): from ``parse_args``
        default_config (dict, optional): the config to start from. If None,
            use ``get_default_config()``.
        environ (dict, optional): the environment. If None, use ``os.environ``.

    Raises:
        ConfigError: if the config file can't be read or the result is invalid.

    Returns:
        dict: the running config.

    """
    config = get_default_config() if default_config is None else default_config
    environ = os.environ if environ is None else environ
    if getattr(parsed_args, "config_path", None):
        contents = load_json_or_yaml(parsed_args.config_path, file_type="yaml")
        if not isinstance(contents, dict):
            raise ConfigError("{} doesn't contain a mapping!".format(parsed_args.config_path))
        config.update(contents)
    for env_var, key in ENV_CONFIG.items():
        if env_var in environ:
            config[key] = environ[env_var]
    for key in ("work_dir", "operating_system", "sign_tool", "sign_tool_path", "verbose", "signing_certificate", "archive"):
        value = getattr(parsed_args, key, None)
        if value is not None:
            config[key] = value
    config["operating_system"] = str(config.get("operating_system") or "").lower()
    if get_operating_system(config) is None:
        # async_main skips unsupported operating systems, so the rest isn't validated
        return config
    # An empty SIGN_TOOL means the default backend
    if not config.get("sign_tool"):
        config["sign_tool"] = SignTool.SIGNTOOL.value
    config["sign_tool"] = str(config["sign_tool"]).lower()
    verify_config(config)
    return config


def verify_config(config):
    """Verify the running config against ``config["schema_file"]``.

    Raises:
        ConfigError: on failure

    """
    schema = load_json_or_yaml(config["schema_file"])
    try:
        jsonschema.validate(config, schema)
    except jsonschema.exceptions.ValidationError as exc:
        raise ConfigError("Can't verify config!\n{}".format(str(exc))) from exc


# enum helpers {{{1
def get_operating_system(config):
    """Return the ``OperatingSystem``, or ``None`` if we don't support it."""
    try:
        return OperatingSystem(config["operating_system"])
    except ValueError:
        return None


def get_sign_tool(config):
    """Return the ``SignTool``.

    Raises:
        ConfigError: on an unknown sign tool.

    """
    try:
        return SignTool(config["sign_tool"])
    except ValueError as exc:
        raise ConfigError("Unknown sign tool {}!".format(config["sign_tool"])) from exc


def get_tmp_dir(config):
    """Return the path to the run's temporary directory."""
    return os.path.join(config["work_dir"], config["tmp_dir_name"])


# check_sign_configuration {{{1
def check_sign_configuration(config):
    """Make sure we have what the selected backend needs before touching anything.

    Only Windows signs individual files, so only Windows has requirements.

    Args:
        config (dict): the running config

    Raises:
        ConfigError: on a missing certificate or password.

    """
    if get_operating_system(config) != OperatingSystem.WINDOWS:
        return
    sign_tool = get_sign_tool(config)
    certificate = config["signing_certificate"]
    if sign_tool == SignTool.SIGNTOOL:
        if not os.path.isfile(certificate):
            raise ConfigError("Could not find certificate at: {}".format(certificate))
        if config.get("sign_password") is None:
            raise ConfigError("If signing is enabled on windows you must set SIGN_PASSWORD")
    elif sign_tool in (SignTool.UCL, SignTool.GARASIGN):
        if not certificate:
            raise ConfigError("{} signing needs a signing certificate name".format(sign_tool.value))


# load_timestamp_servers {{{1
def parse_timestamp_servers(contents):
    """Parse the contents of a ``key=url`` properties file.

    Args:
        contents (str): the file contents

    Returns:
        list: the urls, in file order.

    """
    servers = []
    for line in contents.splitlines():
        line = line.strip()
        if not line or line.startswith(("#", "!")):
            continue
        if "=" in line:
            line = line.split("=", 1)[1].strip()
        if line:
            servers.append(line)
    return servers


def load_timestamp_servers(config):
    """Read the ordered list of timestamp servers.

    ``timestamp_server_config`` is relative to ``work_dir``. If it doesn't
    exist, fall back to the list shipped with codesignscript.

    Args:
        config (dict): the running config

    Raises:
        ConfigError: if the file can't be read.

    Returns:
        list: the timestamp server urls

    """
    path = os.path.join(config["work_dir"], config["timestamp_server_config"])
    if not os.path.exists(path):
        log.info("%s doesn't exist; using the default timestamp servers", path)
        path = os.path.join(DATA_DIR, TIMESTAMP_SERVER_CONFIG)
    try:
        with open(path, "r") as fh:
            servers = parse_timestamp_servers(fh.read())
    except OSError as exc:
        raise ConfigError("Can't read timestamp servers from {}: {}".format(path, exc)) from exc
    log.debug("Timestamp servers from %s: %s", path, " ".join(servers))
    return servers
