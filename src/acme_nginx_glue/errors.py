"""acme-nginx-glue errors."""


class Error(Exception):
    """Generic acme-nginx-glue error."""


class ParseError(Error):
    """The nginx configuration could not be read or parsed."""


class MalformedServerError(Error):
    """A server block is structurally unusable for the requested operation.

    :ivar server: the offending server block, if known

    """
    def __init__(self, message: str, server: object = None) -> None:
        super().__init__(message)
        self.server = server


class UnknownCommandError(Error):
    """The requested command does not exist."""
