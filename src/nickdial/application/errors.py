"""Errors raised by collaborators and reported through the session observer."""


class ResolutionError(Exception):
    """Base for failures a resolution session can report."""

    reason = "resolution_error"


class PermissionDenied(ResolutionError):
    """Contacts permission was refused. Fatal to the session, never retried."""

    reason = "permission_denied"


class DirectoryUnavailable(ResolutionError):
    """The contact directory could not be queried. The caller may start over."""

    reason = "directory_unavailable"


class StoreUnavailable(ResolutionError):
    reason = "store_unavailable"


class InvalidChoice(ResolutionError):
    """The host answered with an identifier the session cannot resolve."""

    reason = "invalid_choice"

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Unknown contact identifier: {identifier!r}")
        self.identifier = identifier
