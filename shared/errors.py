"""Exception types shared across layers."""

from __future__ import annotations


class OracleCommandError(Exception):
    """Base error for the command center."""


class OracleTransportError(OracleCommandError):
    """The oracle service could not be reached or answered with garbage."""

    def __init__(self, message: str, *, url: str = "", status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class InvalidTransitionError(OracleCommandError):
    """A transcript entry was asked to leave a terminal status."""


class UnsupportedOracleError(OracleCommandError, ValueError):
    """Oracle kind exists on the wire but has no routing."""
