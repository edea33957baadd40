import re

from .command_types import CODES_BY_DIRECTION, ClientCommandType, Direction
from .protocol import Command, FIELD_SEPARATOR

# Letters, digits, accented vowels, diaeresis and ñ (Iñaki, Begoña, ...)
NAME_PATTERN = re.compile(r"[a-zA-Z0-9áéíóúÁÉÍÓÚüÜñÑ]+")


def is_valid_name(name) -> bool:
    return isinstance(name, str) and NAME_PATTERN.fullmatch(name) is not None


def is_known_code(code: str, direction: Direction = Direction.TO_SERVER) -> bool:
    return code in CODES_BY_DIRECTION[direction]


def arity_ok(code: str, params: str, has_params: bool = True) -> bool:
    """Check the parameter shape of a client command.

    CON and MSG take one non-empty field, PRV takes a valid recipient name
    followed by a non-empty message, LUS and EXI take nothing at all.
    """
    if code in (ClientCommandType.CON, ClientCommandType.MSG):
        return has_params and params != ""
    if code == ClientCommandType.PRV:
        if not has_params:
            return False
        recipient, sep, text = params.partition(FIELD_SEPARATOR)
        return bool(sep) and text != "" and is_valid_name(recipient)
    if code in (ClientCommandType.LUS, ClientCommandType.EXI):
        return not has_params
    return False


def is_valid_command(command) -> bool:
    if not isinstance(command, Command):
        return False
    return is_known_code(command.code) and arity_ok(
        command.code, command.params, command.has_params
    )
