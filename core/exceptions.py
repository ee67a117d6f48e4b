"""Exception hierarchy for the patching system."""

from typing import Optional


class PatchingError(Exception):
    """Base class for patching failures."""

    def __init__(self, message: str, host: Optional[str] = None):
        super().__init__(message)
        self.host = host


class ConfigurationError(PatchingError):
    """Raised when the workflow configuration is missing or invalid."""


class ConnectivityError(PatchingError):
    """Host did not answer the reachability check."""


class RemoteCommandError(PatchingError):
    """A remote observation command could not be executed."""

    def __init__(self, message: str, host: Optional[str] = None,
                 rc: Optional[int] = None, stderr: str = ""):
        super().__init__(message, host)
        self.rc = rc
        self.stderr = stderr


class UpdateError(PatchingError):
    """Package cache clean or upgrade failed."""


class RebootTimeoutError(PatchingError):
    """Host did not come back within the reboot timeout."""

    def __init__(self, message: str, host: Optional[str] = None,
                 elapsed_seconds: float = 0.0):
        super().__init__(message, host)
        self.elapsed_seconds = elapsed_seconds


class AdvisoryCheckError(PatchingError):
    """Unexpected result from the advisory reboot check.

    Never fatal: callers treat it as "no reboot needed".
    """

    def __init__(self, message: str, host: Optional[str] = None,
                 rc: Optional[int] = None):
        super().__init__(message, host)
        self.rc = rc
