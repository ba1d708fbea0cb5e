"""Custom exceptions for InstaSaver."""


class InstaSaverError(Exception):
    """Base exception for InstaSaver."""
    pass


class ContextUnresolvedError(InstaSaverError):
    """Username, shortcode or story id could not be read from the page."""
    pass


class FetchError(InstaSaverError):
    """Instagram API unreachable or returned a non-success status."""
    pass


class NotFoundError(InstaSaverError):
    """Instagram answered but the user, story or post is absent or expired."""
    pass


class NoMediaError(InstaSaverError):
    """Item found but it carries no usable video or image rendition."""
    pass


class TransportUnavailableError(InstaSaverError):
    """The privileged side of the message channel is not running."""
    pass


class DownloadRejectedError(InstaSaverError):
    """The download facility refused or failed a submission."""
    pass
