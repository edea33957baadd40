import asyncio
import logging
from typing import Optional

import websockets

from .command_types import ClientCommandType, ServerCommandType
from .protocol import Command, LIST_SEPARATOR, make_command, parse_command
from .registry import Registry, Session, SessionState
from .validation import is_valid_command, is_valid_name

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 4444
# Largest message the original UTF frame could carry
MAX_MESSAGE_SIZE = 65535
STATUS_INTERVAL = 20

REPLY_CONNECTED = "connected"
REPLY_INVALID_NAME = "invalid name"
REPLY_NAME_IN_USE = "name in use"
REPLY_ALREADY_CONNECTED = "already connected"
REPLY_NOT_CONNECTED = "not connected"


class ConnectionHandler:
    """Read-validate-dispatch loop for one client connection."""

    def __init__(self, ws, registry: Registry):
        self.session = Session(ws)
        self.registry = registry
        self._handlers = {
            ClientCommandType.CON: self.handle_connect,
            ClientCommandType.MSG: self.handle_message,
            ClientCommandType.PRV: self.handle_private,
            ClientCommandType.LUS: self.handle_list_users,
            ClientCommandType.EXI: self.handle_exit,
        }

    async def run(self):
        session = self.session
        logging.info("New connection from %s", session.peer)
        try:
            async for raw in session.ws:
                command = parse_command(raw)
                if not is_valid_command(command):
                    reason = getattr(command, "reason", "bad parameters")
                    logging.warning(
                        "Dropping malformed command from %s: %r (%s)", session.label, raw, reason
                    )
                    continue
                await self.dispatch(command)
                if session.state is SessionState.TERMINATED:
                    break
        except websockets.exceptions.ConnectionClosed as e:
            logging.info("Connection closed: %s (%s)", session.label, e)
        except OSError as e:
            logging.info("Connection lost: %s (%s)", session.label, e)
        except Exception as e:
            logging.exception("Error in receive loop for %s: %s", session.label, e)
        finally:
            await self.teardown()

    async def dispatch(self, command: Command):
        code = ClientCommandType(command.code)
        if code is not ClientCommandType.EXI:
            if code is ClientCommandType.CON and self.session.registered:
                await self.reply(ServerCommandType.NOK, REPLY_ALREADY_CONNECTED)
                return
            if code is not ClientCommandType.CON and not self.session.registered:
                await self.reply(ServerCommandType.NOK, REPLY_NOT_CONNECTED)
                return
        await self._handlers[code](command)

    async def reply(self, code: ServerCommandType, *fields) -> bool:
        return await self.session.send(make_command(code, *fields))

    async def handle_connect(self, command: Command):
        name = command.params
        if not is_valid_name(name):
            logging.info("Rejected invalid name from %s: %r", self.session.peer, name)
            await self.reply(ServerCommandType.NOK, REPLY_INVALID_NAME)
            return
        registered = await self.registry.try_register(
            self.session,
            name,
            reply=make_command(ServerCommandType.OK, REPLY_CONNECTED),
            announce=make_command(ServerCommandType.CON, name),
        )
        if not registered:
            logging.info("Name in use: %s", name)
            await self.reply(ServerCommandType.NOK, REPLY_NAME_IN_USE)
            return
        logging.info("Client %s joined from %s", name, self.session.peer)

    async def handle_message(self, command: Command):
        name = self.session.name
        delivered = await self.registry.broadcast(
            make_command(ServerCommandType.CHT, name, command.params)
        )
        logging.info("Message from %s delivered to %d users", name, delivered)

    async def handle_private(self, command: Command):
        target, text = command.fields(2)
        name = self.session.name
        sent = await self.registry.send_private(
            self.session, target, make_command(ServerCommandType.PRV, name, text)
        )
        if sent:
            logging.info("Private message from %s to %s", name, target)
        else:
            logging.info("Private message from %s to %s not routed", name, target)

    async def handle_list_users(self, command: Command):
        names = await self.registry.list_names()
        await self.reply(ServerCommandType.LST, LIST_SEPARATOR.join(names))

    async def handle_exit(self, command: Command):
        await self.teardown()

    async def teardown(self):
        session = self.session
        if session.state is SessionState.TERMINATED:
            return
        was_registered = session.registered
        session.state = SessionState.TERMINATED
        if was_registered:
            removed = await self.registry.unregister(
                session, farewell=make_command(ServerCommandType.EXI, session.name)
            )
            if removed:
                logging.info("Client %s disconnected", session.name)
        else:
            logging.info("Unregistered connection from %s closed", session.peer)
        await session.close()


class RelayServer:
    """Listener: binds once and runs one ConnectionHandler per connection."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        max_size: int = MAX_MESSAGE_SIZE,
        ping_interval: Optional[float] = None,
        registry: Optional[Registry] = None,
    ):
        self.host = host
        self.requested_port = port
        self.max_size = max_size
        self.ping_interval = ping_interval
        self.registry = registry or Registry()
        self._server = None

    async def handler(self, ws):
        await ConnectionHandler(ws, self.registry).run()

    async def start(self):
        # OSError here means the port could not be bound
        self._server = await websockets.serve(
            self.handler,
            self.host,
            self.requested_port,
            max_size=self.max_size,
            ping_interval=self.ping_interval,
        )
        logging.info("Relay listening on %s:%s", self.host, self.port)
        return self

    @property
    def port(self) -> int:
        if self._server is None:
            return self.requested_port
        return self._server.sockets[0].getsockname()[1]

    async def serve_forever(self):
        await self._server.serve_forever()

    async def close(self):
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None


async def main_loop(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    max_size: int = MAX_MESSAGE_SIZE,
    ping_interval: Optional[float] = None,
):
    server = await RelayServer(host, port, max_size=max_size, ping_interval=ping_interval).start()

    async def status_logger():
        while True:
            await asyncio.sleep(STATUS_INTERVAL)
            names = await server.registry.list_names()
            logging.info("Registered users (%d): %s", len(names), names)

    status_task = asyncio.create_task(status_logger())
    try:
        await server.serve_forever()
    finally:
        status_task.cancel()
        try:
            await status_task
        except asyncio.CancelledError:
            pass
        await server.close()
        logging.info("Relay on %s:%s shut down", host, port)
