import asyncio

import websockets

from relaychat.protocol import parse_command
from relaychat.server import ConnectionHandler
from relaychat.validation import is_valid_command

_CLOSE = object()


class FakeConnection:
    """Stands in for a websockets connection: scripted input, recorded output."""

    def __init__(self, incoming=(), remote_address=("127.0.0.1", 50000)):
        self.remote_address = remote_address
        self.sent = []
        self.closed = False
        self.broken = False
        # when set, send() waits for this event before delivering
        self.gate = None
        self._incoming = asyncio.Queue()
        for raw in incoming:
            self._incoming.put_nowait(raw)

    def feed(self, raw):
        self._incoming.put_nowait(raw)

    def hang_up(self):
        self._incoming.put_nowait(_CLOSE)

    def drop(self):
        self.broken = True
        self._incoming.put_nowait(websockets.exceptions.ConnectionClosedError(None, None))

    async def send(self, raw):
        # yield so concurrent handlers interleave like real sockets
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if self.closed or self.broken:
            raise websockets.exceptions.ConnectionClosedError(None, None)
        self.sent.append(raw)

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item


async def send(handler: ConnectionHandler, raw: str):
    """Dispatch one raw command the way the read loop does."""
    command = parse_command(raw)
    if is_valid_command(command):
        await handler.dispatch(command)


async def joined(make_handler, *names):
    handlers = []
    for i, name in enumerate(names):
        handler = make_handler(port=50000 + i)
        await send(handler, f"CON {name}")
        handlers.append(handler)
    for handler in handlers:
        handler.session.ws.sent.clear()
    return handlers
