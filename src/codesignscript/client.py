#!/usr/bin/env python
"""Entry point plumbing for codesignscript.

Attributes:
    log (logging.Logger): the log object for the module

"""
import asyncio
import logging
import sys

from codesignscript.config import get_parser, init_config, parse_args
from codesignscript.exceptions import CodeSignError

log = logging.getLogger(__name__)


# sync_main {{{1
def sync_main(async_main, parser=None, parser_desc=None, commandline_args=None, default_config=None, environ=None):
    """Set up the config and logging, then run ``async_main``.

    Args:
        async_main (function): The function to call once everything is set up
        parser (argparse.ArgumentParser, optional): the parser to use. If
            ``None``, use ``get_parser(parser_desc)``.
        parser_desc (str, optional): the parser description.
        commandline_args (list, optional): the args to parse. If ``None``,
            use ``sys.argv[1:]``.
        default_config (dict, optional): the default config to use for
            ``init_config``. Defaults to None.
        environ (dict, optional): the environment to read config from. If
            ``None``, use ``os.environ``.

    """
    parser = parser or get_parser(parser_desc)
    commandline_args = commandline_args or sys.argv[1:]
    _init_logging()
    try:
        parsed_args = parse_args(parser, commandline_args)
        _init_logging(verbose=parsed_args.verbose)
        config = init_config(parsed_args, default_config=default_config, environ=environ)
    except CodeSignError as exc:
        log.exception("Failed to load config")
        sys.exit(exc.exit_code)
    _init_logging(verbose=config.get("verbose"))
    if parsed_args.ignored_args:
        log.debug("Ignoring build configuration arguments %s", parsed_args.ignored_args)
    asyncio.run(_handle_asyncio_loop(async_main, config))


def _init_logging(verbose=False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=level)
    logging.getLogger().setLevel(level)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


async def _handle_asyncio_loop(async_main, config):
    try:
        await async_main(config)
    except CodeSignError as exc:
        log.exception("Failed to run async_main")
        sys.exit(exc.exit_code)
