from typing import Optional


class AicmdError(Exception):
    """Base class for every failure the CLI reports to the user."""


class UsageError(AicmdError):
    """Neither a description nor piped input was provided."""


class EmptyResultError(AicmdError):
    """The model answered, but without a usable command."""


class ApiError(AicmdError):
    """Something went wrong talking to the chat-completion endpoint."""


class TransportError(ApiError):
    """The request could not be sent, or the stream broke while reading it."""


class RemoteApiError(ApiError):
    """The endpoint answered with an error (bad status or embedded error object)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(ApiError):
    """The response body could not be read."""


class ParseError(ApiError):
    """The response body did not have the expected JSON shape."""
