#!/usr/bin/env python
"""codesignscript exceptions."""

from codesignscript.constants import STATUSES


class CodeSignError(Exception):
    """codesignscript base error.

    To use::

        import sys
        try:
            ...
        except CodeSignError as exc:
            log.exception("log message")
            sys.exit(exc.exit_code)

    Attributes:
        exit_code (int): this is 1 by default (failure)

    """

    def __init__(self, *args, exit_code=STATUSES["failure"], **kwargs):
        """Initialize CodeSignError.

        Args:
            *args: These are passed on via super().
            exit_code (int, optional): The exit_code we should exit with when
                this exception is raised.  Defaults to 1 (failure).
            **kwargs: These are passed on via super().

        """
        self.exit_code = exit_code
        super(CodeSignError, self).__init__(*args, **kwargs)


class ConfigError(CodeSignError):
    """The signing configuration is missing something we need."""


class FailedSubprocess(CodeSignError):
    """Something went wrong during a subprocess exec."""


class SigningError(CodeSignError):
    """A signing backend failed."""


class TimestampServersExhausted(SigningError):
    """No timestamp server was able to stamp a file."""


class UnknownArchiveType(CodeSignError):
    """We don't know how to unpack an archive for this operating system."""


class UnknownArchiveLayout(CodeSignError):
    """There is no single top-level directory in an extracted archive."""
