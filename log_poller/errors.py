"""
Exception classes shared by the poller components
"""

from typing import Optional


class PollerError(Exception):
    """Base class for all poller errors"""
    pass


class ConfigurationError(PollerError):
    """Raised when required settings are missing or invalid (fatal at startup)"""
    pass


class TransientRemoteError(PollerError):
    """Raised when a CloudWatch Logs call fails; the next cycle retries from the persisted cursor"""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class PersistenceError(PollerError):
    """Raised when a cursor file cannot be read or written"""
    pass


class CorruptCursorError(PersistenceError):
    """Raised when a cursor file exists but does not hold a usable token"""
    pass


class ParseError(PollerError):
    """Raised when a log message body cannot be turned into a record"""
    pass
