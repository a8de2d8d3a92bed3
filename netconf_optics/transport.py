"""SSH transport for NETCONF sessions."""

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field

import asyncssh

from .errors import AuthenticationError, ChannelError, NetconfConnectionError

logger = logging.getLogger(__name__)

READ_SIZE = 4096
DEFAULT_SUBSYSTEM = "netconf"


@dataclass
class ConnectionInfo:
    """Where and how to reach a device for a single request."""
    host: str
    port: int = 830
    username: str = "admin"
    password: str = field(default="", repr=False)


@contextmanager
def _channel_errors(action: str, host: str):
    try:
        yield
    except (OSError, asyncssh.Error) as exc:
        raise ChannelError(f"{action} failed on {host}: {exc}") from exc


class SecureChannel:
    """An authenticated SSH connection with one subsystem channel open.

    Byte-oriented; knows nothing about NETCONF. Every I/O failure surfaces as
    ChannelError. The owner is responsible for the close sequence.
    """

    def __init__(self, host: str, conn, writer, reader):
        self.host = host
        self._conn = conn
        self._writer = writer
        self._reader = reader

    async def read(self, size: int = READ_SIZE) -> bytes:
        """Read up to ``size`` bytes. Returns b"" once the remote sent EOF."""
        with _channel_errors("Read", self.host):
            return await self._reader.read(size)

    async def write(self, data: bytes) -> None:
        with _channel_errors("Write", self.host):
            self._writer.write(data)
            await self._writer.drain()

    async def send_eof(self) -> None:
        with _channel_errors("Sending EOF", self.host):
            self._writer.write_eof()

    async def wait_eof(self) -> None:
        """Discard incoming data until the remote side signals EOF."""
        with _channel_errors("Waiting for EOF", self.host):
            while await self._reader.read(READ_SIZE):
                pass

    async def close(self) -> None:
        """Close the channel, then the connection, even if the channel fails."""
        try:
            with _channel_errors("Closing channel", self.host):
                self._writer.channel.close()
        finally:
            with _channel_errors("Closing connection", self.host):
                self._conn.close()

    async def wait_closed(self) -> None:
        try:
            with _channel_errors("Waiting for channel close", self.host):
                await self._writer.channel.wait_closed()
        finally:
            with _channel_errors("Waiting for connection close", self.host):
                await self._conn.wait_closed()


async def open_channel(
    info: ConnectionInfo,
    subsystem: str = DEFAULT_SUBSYSTEM,
    connect_timeout: int = 10,
) -> SecureChannel:
    """Connect, authenticate with a password and open ``subsystem``.

    Raises:
        AuthenticationError: credentials were rejected.
        NetconfConnectionError: TCP or SSH setup failed.
        ChannelError: the subsystem could not be opened.
    """
    try:
        conn = await asyncssh.connect(
            info.host,
            port=info.port,
            username=info.username,
            password=info.password,
            known_hosts=None,
            client_keys=None,
            agent_path=None,
            connect_timeout=connect_timeout,
        )
    except asyncssh.PermissionDenied as exc:
        raise AuthenticationError(
            f"Authentication failed for {info.username}@{info.host}: {exc}"
        ) from exc
    except (OSError, asyncssh.Error, asyncio.TimeoutError) as exc:
        raise NetconfConnectionError(
            f"Could not connect to {info.host}:{info.port}: {exc}"
        ) from exc

    logger.debug(f"SSH connection to {info.host}:{info.port} established")

    try:
        writer, reader, _ = await conn.open_session(subsystem=subsystem, encoding=None)
    except (OSError, asyncssh.Error) as exc:
        conn.close()
        await conn.wait_closed()
        raise ChannelError(
            f"Could not open {subsystem} subsystem on {info.host}: {exc}"
        ) from exc

    logger.debug(f"Opened {subsystem} subsystem on {info.host}")
    return SecureChannel(info.host, conn, writer, reader)
