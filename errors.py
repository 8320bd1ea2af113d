"""
Error kinds shared by the catalog, progress and bookmark layers.
"""

from enum import Enum


class ErrorKind(str, Enum):
    REMOTE = "remote_error"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    RENDER_FAILURE = "render_failure"


class PortalError(Exception):
    kind: ErrorKind = ErrorKind.REMOTE

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value


class RemoteError(PortalError):
    """A read or write against the remote store failed."""
    kind = ErrorKind.REMOTE


class Unauthenticated(PortalError):
    """A write was attempted with no signed-in user."""
    kind = ErrorKind.UNAUTHENTICATED


class NotFound(PortalError):
    kind = ErrorKind.NOT_FOUND


class RenderFailure(PortalError):
    kind = ErrorKind.RENDER_FAILURE
