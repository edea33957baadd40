import logging
from enum import Enum
from typing import Callable, Optional

import websockets

from .command_types import ClientCommandType, Direction, ServerCommandType
from .protocol import Command, Unrecognized, make_command, parse_command
from .server import DEFAULT_PORT, MAX_MESSAGE_SIZE


class ConnectionStatus(Enum):
    ESTABLISHED = "established"
    REJECTED = "rejected"
    CLOSED = "closed"


class ChatClientError(Exception):
    pass


class ChatClient:
    """Client end of one relay connection.

    Outgoing commands go through submit() and its helpers, decoded server
    commands are handed to on_command, and on_status hears about the
    connection lifecycle: ESTABLISHED once the server accepts the name,
    REJECTED with the server's reason, CLOSED when the connection ends.
    """

    def __init__(
        self,
        on_command: Optional[Callable[[Command], None]] = None,
        on_status: Optional[Callable[[ConnectionStatus, str], None]] = None,
    ):
        self.on_command = on_command
        self.on_status = on_status
        self.ws = None
        self.name: Optional[str] = None
        self.joined = False
        self._pending_name: Optional[str] = None

    async def connect(self, host: str = "localhost", port: int = DEFAULT_PORT):
        uri = f"ws://{host}:{port}"
        self.ws = await websockets.connect(uri, max_size=MAX_MESSAGE_SIZE)
        logging.info("Connected to %s", uri)

    async def submit(self, raw: str):
        if self.ws is None:
            raise ChatClientError("not connected to a server")
        try:
            await self.ws.send(raw)
        except websockets.exceptions.ConnectionClosed as e:
            raise ChatClientError("connection to the server is closed") from e

    async def join(self, name: str):
        self._pending_name = name
        await self.submit(make_command(ClientCommandType.CON, name))

    async def say(self, text: str):
        await self.submit(make_command(ClientCommandType.MSG, text))

    async def tell(self, name: str, text: str):
        await self.submit(make_command(ClientCommandType.PRV, name, text))

    async def request_users(self):
        await self.submit(make_command(ClientCommandType.LUS))

    async def leave(self):
        await self.submit(make_command(ClientCommandType.EXI))
        self.joined = False

    async def listen(self):
        if self.ws is None:
            raise ChatClientError("not connected to a server")
        try:
            async for raw in self.ws:
                command = parse_command(raw, Direction.TO_CLIENT)
                if isinstance(command, Unrecognized):
                    logging.warning("Ignoring server message %r (%s)", command.raw, command.reason)
                    continue
                await self._handle(command)
        except websockets.exceptions.ConnectionClosedError as e:
            logging.info("Connection lost: %s", e)
        finally:
            self.joined = False
            self.ws = None
            self._notify(ConnectionStatus.CLOSED, "connection closed")

    async def _handle(self, command: Command):
        if not self.joined and command.code == ServerCommandType.OK:
            self.joined = True
            self.name = self._pending_name
            self._notify(ConnectionStatus.ESTABLISHED, command.params)
            try:
                await self.request_users()
            except ChatClientError as e:
                logging.info("Could not request the user list: %s", e)
        elif not self.joined and command.code == ServerCommandType.NOK:
            self._notify(ConnectionStatus.REJECTED, command.params)
        if self.on_command:
            self.on_command(command)

    def _notify(self, status: ConnectionStatus, detail: str):
        if self.on_status:
            self.on_status(status, detail)

    async def close(self):
        if self.ws is not None:
            await self.ws.close()
