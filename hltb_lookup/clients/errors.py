from __future__ import annotations


class HLTBError(Exception):
    """Base class for every recoverable lookup failure."""


class TransportFailure(HLTBError):
    """No response at all (connection error, timeout, TLS failure)."""


class UpstreamRejection(HLTBError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, message: str = ""):
        self.status = int(status)
        super().__init__(message or f"HTTP {self.status}")


class MalformedResponse(HLTBError):
    """
    The request succeeded but the body is unusable.

    This includes the literal `null` body the site returns when it has no data to offer
    (e.g. a private Steam profile).
    """


class NoIdentityFound(HLTBError):
    """A well-formed response that contains no usable candidate."""


class PrivateOrInaccessibleSource(HLTBError):
    """
    A bulk import returned nothing.

    The site does not distinguish a private profile from an empty library, so neither do we.
    """


class NullResponse(MalformedResponse):
    """The body was the literal JSON `null`."""
