"""Tests for the NETCONF session read loop, handshake and teardown."""

import pytest

from netconf_optics import session as netconf
from netconf_optics.errors import ChannelError, IncompleteFrameError
from netconf_optics.framing import frame_request
from netconf_optics.session import NetconfSession, SessionState


DEVICE_HELLO = (
    b'<hello xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">'
    b"<capabilities><capability>urn:ietf:params:netconf:base:1.1</capability></capabilities>"
    b"<session-id>4</session-id></hello>]]>]]>"
)

TEARDOWN = ["send_eof", "wait_eof", "close", "wait_closed"]


def chunked(xml):
    """Frame a document the way a base:1.1 device sends it, up to the ## marker."""
    return f"\n#{len(xml.encode('utf-8'))}\n{xml}\n##"


class FakeChannel:
    """Scripted stand-in for SecureChannel."""

    def __init__(self, chunks, fail_write=False, fail_on=None):
        self.host = "device1"
        self.chunks = list(chunks)
        self.written = []
        self.calls = []
        self.fail_write = fail_write
        self.fail_on = fail_on or set()

    async def read(self, size=4096):
        if self.chunks:
            return self.chunks.pop(0)
        return b""

    async def write(self, data):
        self.calls.append("write")
        if self.fail_write:
            raise ChannelError("Write failed on device1: broken pipe")
        self.written.append(data)

    async def _step(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise ChannelError(f"{name} failed on device1")

    async def send_eof(self):
        await self._step("send_eof")

    async def wait_eof(self):
        await self._step("wait_eof")

    async def close(self):
        await self._step("close")

    async def wait_closed(self):
        await self._step("wait_closed")


def patch_open_channel(monkeypatch, channel):
    opened = {}

    async def fake_open_channel(info, subsystem="netconf", connect_timeout=10):
        opened["info"] = info
        opened["subsystem"] = subsystem
        opened["connect_timeout"] = connect_timeout
        return channel

    monkeypatch.setattr(netconf, "open_channel", fake_open_channel)
    return opened


class TestReadMessage:
    """Read loop termination and buffering."""

    @pytest.mark.asyncio
    async def test_stops_after_end_of_message(self):
        """Test reading stops at ]]>]]>."""
        session = NetconfSession(FakeChannel([b"<hello/>]]>]]>"]))
        assert await session.read_message() == "<hello/>]]>]]>"

    @pytest.mark.asyncio
    async def test_stops_after_end_of_chunks(self):
        """Test reading stops at ##."""
        session = NetconfSession(FakeChannel([b"\n#3\nabc\n##"]))
        assert await session.read_message() == "\n#3\nabc\n##"

    @pytest.mark.asyncio
    async def test_bytes_after_terminator_are_kept_for_next_read(self):
        """Test bytes past a terminator start the next message."""
        session = NetconfSession(FakeChannel([b"<hello/>]]>]]>\n#3\nabc\n##\n"]))
        assert await session.read_message() == "<hello/>]]>]]>"
        assert await session.read_message() == "\n#3\nabc\n##"

    @pytest.mark.asyncio
    async def test_terminator_split_across_reads(self):
        """Test a terminator split over reads is detected."""
        session = NetconfSession(FakeChannel([b"<a/>]]>", b"]]", b">"]))
        assert await session.read_message() == "<a/>]]>]]>"

    @pytest.mark.asyncio
    async def test_multibyte_character_split_across_reads(self):
        """Test a UTF-8 character split over reads decodes intact."""
        session = NetconfSession(FakeChannel([b"<a>\xc3", b"\xa9</a>]]>]]>"]))
        assert await session.read_message() == "<a>é</a>]]>]]>"

    @pytest.mark.asyncio
    async def test_eof_before_terminator_raises(self):
        """Test EOF mid-message raises IncompleteFrameError."""
        session = NetconfSession(FakeChannel([b"<rpc-reply>", b"<data>"]))
        with pytest.raises(IncompleteFrameError) as exc_info:
            await session.read_message()
        assert exc_info.value.received == len(b"<rpc-reply><data>")

    @pytest.mark.asyncio
    async def test_immediate_eof_raises(self):
        """Test EOF before any data raises IncompleteFrameError."""
        session = NetconfSession(FakeChannel([]))
        with pytest.raises(IncompleteFrameError):
            await session.read_message()


class TestHandshake:
    """Greeting and request phases are explicit and ordered."""

    @pytest.mark.asyncio
    async def test_phases_advance_state(self):
        """Test each handshake phase advances the state."""
        channel = FakeChannel([DEVICE_HELLO, b"\n#3\nabc\n##\n"])
        session = NetconfSession(channel)

        assert session.state is SessionState.CHANNEL_OPEN
        await session.read_greeting()
        assert session.state is SessionState.GREETED
        await session.send_request("<rpc/>")
        assert session.state is SessionState.REQUEST_SENT
        assert await session.read_reply() == "\n#3\nabc\n##"
        assert session.state is SessionState.RESPONSE_RECEIVED

        assert channel.written == [frame_request("<rpc/>")]

    @pytest.mark.asyncio
    async def test_request_before_greeting_is_rejected(self):
        """Test sending before the greeting raises ChannelError."""
        session = NetconfSession(FakeChannel([]))
        with pytest.raises(ChannelError):
            await session.send_request("<rpc/>")

    @pytest.mark.asyncio
    async def test_greeting_failure_leaves_state_unchanged(self):
        """Test a failed greeting does not advance the state."""
        session = NetconfSession(FakeChannel([b"<hello>"]))
        with pytest.raises(IncompleteFrameError):
            await session.read_greeting()
        assert session.state is SessionState.CHANNEL_OPEN


class TestTeardown:
    """Close sequence runs on every exit path."""

    @pytest.mark.asyncio
    async def test_close_runs_all_steps(self):
        """Test close runs the full teardown sequence."""
        channel = FakeChannel([])
        session = NetconfSession(channel)
        await session.close()
        assert channel.calls == TEARDOWN
        assert session.state is SessionState.CLOSED

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        """Test a second close does nothing."""
        channel = FakeChannel([])
        session = NetconfSession(channel)
        await session.close()
        await session.close()
        assert channel.calls == TEARDOWN

    @pytest.mark.asyncio
    async def test_failed_step_does_not_skip_later_steps(self):
        """Test a failing step does not stop later steps."""
        channel = FakeChannel([], fail_on={"send_eof"})
        session = NetconfSession(channel)
        with pytest.raises(ChannelError, match="send_eof failed"):
            await session.close()
        assert channel.calls == TEARDOWN


class TestRequest:
    """The request pipeline end to end over a fake channel."""

    @pytest.mark.asyncio
    async def test_returns_raw_reply(self, monkeypatch):
        """Test request returns the raw reply text."""
        channel = FakeChannel([DEVICE_HELLO, b"\n#6\n<ok/>\n\n##\n"])
        opened = patch_open_channel(monkeypatch, channel)

        reply = await netconf.request("10.0.0.1", 830, "admin", "secret", "<rpc/>")

        assert reply == "\n#6\n<ok/>\n\n##"
        assert channel.written == [frame_request("<rpc/>")]
        assert channel.calls == ["write"] + TEARDOWN
        assert opened["info"].host == "10.0.0.1"
        assert opened["info"].port == 830
        assert opened["info"].username == "admin"
        assert opened["subsystem"] == "netconf"

    @pytest.mark.asyncio
    async def test_write_failure_still_tears_down(self, monkeypatch):
        """Test a write failure still closes the channel."""
        channel = FakeChannel([DEVICE_HELLO], fail_write=True)
        patch_open_channel(monkeypatch, channel)

        with pytest.raises(ChannelError, match="broken pipe"):
            await netconf.request("10.0.0.1", 830, "admin", "secret", "<rpc/>")

        assert channel.calls == ["write"] + TEARDOWN

    @pytest.mark.asyncio
    async def test_truncated_reply_tears_down_and_raises(self, monkeypatch):
        """Test a truncated reply closes the channel and raises."""
        channel = FakeChannel([DEVICE_HELLO, b"\n#100\n<rpc-reply>"])
        patch_open_channel(monkeypatch, channel)

        with pytest.raises(IncompleteFrameError):
            await netconf.request("10.0.0.1", 830, "admin", "secret", "<rpc/>")

        assert channel.calls[-4:] == TEARDOWN

    @pytest.mark.asyncio
    async def test_teardown_failure_after_success_is_raised(self, monkeypatch):
        """Test a teardown failure after success is raised."""
        channel = FakeChannel([DEVICE_HELLO, b"\n#6\n<ok/>\n\n##\n"], fail_on={"wait_closed"})
        patch_open_channel(monkeypatch, channel)

        with pytest.raises(ChannelError, match="Teardown"):
            await netconf.request("10.0.0.1", 830, "admin", "secret", "<rpc/>")

    @pytest.mark.asyncio
    async def test_teardown_failure_does_not_mask_original_error(self, monkeypatch):
        """Test the original error wins over a teardown failure."""
        channel = FakeChannel([DEVICE_HELLO], fail_write=True, fail_on={"close"})
        patch_open_channel(monkeypatch, channel)

        with pytest.raises(ChannelError, match="broken pipe"):
            await netconf.request("10.0.0.1", 830, "admin", "secret", "<rpc/>")

        assert channel.calls == ["write"] + TEARDOWN

    @pytest.mark.asyncio
    async def test_fetch_decodes_reply(self, monkeypatch):
        """Test fetch unframes and decodes the reply."""
        xml = '<rpc-reply message-id="101"><data><a>1</a></data></rpc-reply>'
        channel = FakeChannel([DEVICE_HELLO, chunked(xml).encode("utf-8")])
        patch_open_channel(monkeypatch, channel)

        value = await netconf.fetch("10.0.0.1", 830, "admin", "secret", "<rpc/>")

        assert value == {"rpc-reply": {"data": {"a": "1"}, "@message-id": "101"}}


def test_request_sync_runs_pipeline(monkeypatch):
    """Test the blocking wrapper runs the whole pipeline."""
    channel = FakeChannel([DEVICE_HELLO, b"\n#6\n<ok/>\n\n##\n"])
    patch_open_channel(monkeypatch, channel)

    reply = netconf.request_sync("10.0.0.1", 830, "admin", "secret", "<rpc/>", connect_timeout=5)

    assert reply == "\n#6\n<ok/>\n\n##"
    assert channel.calls == ["write"] + TEARDOWN
