"""Exceptions raised by the NETCONF client."""


class NetconfError(Exception):
    """Base class for all NETCONF client failures."""


class NetconfConnectionError(NetconfError):
    """TCP or SSH transport setup failed."""


class AuthenticationError(NetconfError):
    """The device rejected the supplied credentials."""


class ChannelError(NetconfError):
    """Subsystem negotiation or I/O on an open channel failed."""


class IncompleteFrameError(NetconfError):
    """The stream ended before a message terminator was seen."""

    def __init__(self, message: str, received: int = 0):
        super().__init__(message)
        self.received = received


class DecodeError(NetconfError):
    """Reply markup could not be interpreted as well-formed XML."""


class FramingError(DecodeError):
    """Reply text does not follow chunked or end-of-message framing."""
