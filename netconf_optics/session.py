"""NETCONF session handling and the request pipeline.

A session lives for exactly one request: read the device hello, send our hello
together with the chunk-framed request, read the reply, tear down.
"""

import asyncio
import logging
from enum import Enum
from typing import Any

from .decoder import Value, decode
from .errors import ChannelError, IncompleteFrameError, NetconfError
from .framing import SuffixMatcher, frame_request, unframe
from .transport import (
    DEFAULT_SUBSYSTEM,
    READ_SIZE,
    ConnectionInfo,
    SecureChannel,
    open_channel,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle of a session after its channel is open."""
    CHANNEL_OPEN = "channel_open"
    GREETED = "greeted"
    REQUEST_SENT = "request_sent"
    RESPONSE_RECEIVED = "response_received"
    CLOSED = "closed"


class NetconfSession:
    """One request/response exchange over an open channel.

    Use as an async context manager so the channel is torn down on every exit
    path::

        async with NetconfSession(channel) as session:
            await session.read_greeting()
            await session.send_request(body)
            reply = await session.read_reply()
    """

    def __init__(self, channel: SecureChannel):
        self.channel = channel
        self.state = SessionState.CHANNEL_OPEN
        self._pending = b""

    async def __aenter__(self) -> "NetconfSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            await self.close()
        except NetconfError as teardown_error:
            if exc is None:
                raise
            logger.warning(
                f"Teardown of session with {self.channel.host} failed after "
                f"{exc_type.__name__}: {teardown_error}"
            )
        return False

    async def read_message(self) -> str:
        """Read until ``]]>]]>`` or ``##``, terminator included.

        Bytes received past the terminator are kept for the next call. The
        buffer is decoded once, after the terminator, so multi-byte characters
        split across reads survive.

        Raises:
            IncompleteFrameError: the remote sent EOF before a terminator.
        """
        matcher = SuffixMatcher()
        buffer = bytearray()

        while True:
            data, self._pending = self._pending, b""
            if not data:
                data = await self.channel.read(READ_SIZE)
                if not data:
                    raise IncompleteFrameError(
                        f"{self.channel.host} closed the stream after {len(buffer)} "
                        f"bytes without a message terminator",
                        received=len(buffer),
                    )

            end = matcher.scan(data)
            if end >= 0:
                buffer += data[:end]
                self._pending = data[end:]
                return buffer.decode("utf-8", errors="replace")
            buffer += data

    async def read_greeting(self) -> str:
        """Read and return the device hello."""
        if self.state is not SessionState.CHANNEL_OPEN:
            raise ChannelError(f"Cannot read greeting in state {self.state.value}")
        try:
            hello = await self.read_message()
        except NetconfError as e:
            logger.error(f"No hello from {self.channel.host}: {e}")
            raise
        self.state = SessionState.GREETED
        logger.debug(f"Received hello from {self.channel.host} ({len(hello)} chars)")
        return hello

    async def send_request(self, body: str) -> None:
        """Send our hello followed by ``body`` as one chunk, in one write."""
        if self.state is not SessionState.GREETED:
            raise ChannelError(f"Cannot send request in state {self.state.value}")
        frame = frame_request(body)
        try:
            await self.channel.write(frame)
        except NetconfError as e:
            logger.error(f"Sending request to {self.channel.host} failed: {e}")
            raise
        self.state = SessionState.REQUEST_SENT
        logger.debug(f"Sent {len(frame)} bytes to {self.channel.host}")

    async def read_reply(self) -> str:
        """Read the raw reply, framing included."""
        if self.state is not SessionState.REQUEST_SENT:
            raise ChannelError(f"Cannot read reply in state {self.state.value}")
        reply = await self.read_message()
        self.state = SessionState.RESPONSE_RECEIVED
        return reply

    async def close(self) -> None:
        """Send EOF, wait for the remote EOF, close and wait for closure.

        Every step is attempted even when an earlier one fails; the first
        failure is then raised as ChannelError.
        """
        if self.state is SessionState.CLOSED:
            return

        errors = []
        for step in (
            self.channel.send_eof,
            self.channel.wait_eof,
            self.channel.close,
            self.channel.wait_closed,
        ):
            try:
                await step()
            except NetconfError as e:
                errors.append(e)

        self.state = SessionState.CLOSED
        if errors:
            raise ChannelError(
                f"Teardown of session with {self.channel.host} failed: {errors[0]}"
            ) from errors[0]


async def request(
    host: str,
    port: int,
    username: str,
    password: str,
    body: str,
    *,
    subsystem: str = DEFAULT_SUBSYSTEM,
    connect_timeout: int = 10,
) -> str:
    """Send one NETCONF request and return the raw reply text.

    The reply still carries its framing; pass it through ``unframe`` before
    decoding, or use ``fetch``.
    """
    info = ConnectionInfo(host=host, port=port, username=username, password=password)
    channel = await open_channel(info, subsystem=subsystem, connect_timeout=connect_timeout)

    async with NetconfSession(channel) as session:
        await session.read_greeting()
        await session.send_request(body)
        reply = await session.read_reply()

    logger.info(f"Received {len(reply)} chars from {host}:{port}")
    return reply


def request_sync(
    host: str,
    port: int,
    username: str,
    password: str,
    body: str,
    **kwargs: Any,
) -> str:
    """Blocking variant of ``request`` for callers without an event loop."""
    return asyncio.run(request(host, port, username, password, body, **kwargs))


async def fetch(
    host: str,
    port: int,
    username: str,
    password: str,
    body: str,
    **kwargs: Any,
) -> Value:
    """Send one NETCONF request and return the decoded reply."""
    reply = await request(host, port, username, password, body, **kwargs)
    return decode(unframe(reply))
