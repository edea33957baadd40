from enum import Enum


class Direction(Enum):
    TO_SERVER = "to_server"
    TO_CLIENT = "to_client"


# CON <name> | MSG <text> | PRV <name> <text> | LUS | EXI
class ClientCommandType(str, Enum):
    CON = "CON"
    MSG = "MSG"
    PRV = "PRV"
    LUS = "LUS"
    EXI = "EXI"


# OK/NOK answer CON; CON/EXI double as join and leave notices
class ServerCommandType(str, Enum):
    OK = "OK"
    NOK = "NOK"
    CHT = "CHT"
    PRV = "PRV"
    LST = "LST"
    CON = "CON"
    EXI = "EXI"


CODES_BY_DIRECTION = {
    Direction.TO_SERVER: frozenset(c.value for c in ClientCommandType),
    Direction.TO_CLIENT: frozenset(c.value for c in ServerCommandType),
}
