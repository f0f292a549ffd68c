"""
Error taxonomy shared by services and routers
"""
from typing import Optional


class PortalError(Exception):
    """Base class for every failure surfaced to a staff user"""

    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigurationMissing(PortalError):
    """The backend client could not be constructed; callers degrade to demo mode"""

    status_code = 503


class AuthenticationFailure(PortalError):
    """Bad credentials; shown inline on the login form"""

    status_code = 401


class SessionAbsent(PortalError):
    """No valid session; handled by redirecting to the login view"""

    status_code = 401


class FetchFailure(PortalError):
    """A read failed; the previously displayed collection stays in place"""

    status_code = 502


class WriteFailure(PortalError):
    """A write failed; the view is resynchronized with the server"""

    status_code = 502


class InvalidInput(PortalError):
    """Rejected before contacting the backend"""

    status_code = 400


def describe(exc: BaseException) -> str:
    """Human-readable message for any backend exception"""
    message = getattr(exc, "message", None) or str(exc)
    return message or exc.__class__.__name__
