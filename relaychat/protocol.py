from dataclasses import dataclass
from typing import Union

from .command_types import CODES_BY_DIRECTION, Direction

CODE_WIDTH = 3
FIELD_SEPARATOR = " "
LIST_SEPARATOR = ","


@dataclass(frozen=True)
class Command:
    code: str
    params: str = ""
    has_params: bool = False

    def fields(self, count: int) -> list:
        """Split params into at most `count` fields; the last keeps its spaces."""
        return self.params.split(FIELD_SEPARATOR, count - 1)

    def encode(self) -> str:
        if self.has_params:
            return f"{self.code}{FIELD_SEPARATOR}{self.params}"
        return self.code


@dataclass(frozen=True)
class Unrecognized:
    raw: str
    reason: str


ParseResult = Union[Command, Unrecognized]


def make_command(code, *fields) -> str:
    """Serialize a command: CODE, or CODE followed by space-joined fields."""
    code = getattr(code, "value", code)
    parts = [str(f) for f in fields]
    if not parts:
        return code
    return FIELD_SEPARATOR.join([code] + parts)


def parse_command(raw, direction: Direction = Direction.TO_SERVER) -> ParseResult:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError:
            return Unrecognized(repr(raw), "not valid UTF-8")
    if not raw:
        return Unrecognized(raw, "empty message")

    code, sep, params = raw.partition(FIELD_SEPARATOR)
    if direction is Direction.TO_SERVER and len(code) != CODE_WIDTH:
        return Unrecognized(raw, "bad command code width")
    if code not in CODES_BY_DIRECTION[direction]:
        return Unrecognized(raw, "unknown command code")
    return Command(code=code, params=params, has_params=bool(sep))
