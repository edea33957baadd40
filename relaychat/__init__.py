from .command_types import ClientCommandType, Direction, ServerCommandType
from .protocol import Command, Unrecognized, make_command, parse_command
from .registry import Registry, Session, SessionState
from .server import ConnectionHandler, RelayServer, main_loop
