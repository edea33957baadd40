import pytest

from relaychat.command_types import Direction
from relaychat.protocol import parse_command
from relaychat.validation import arity_ok, is_known_code, is_valid_command, is_valid_name


@pytest.mark.parametrize("name", ["Ana", "Iñaki", "Íñigo", "Begoña", "Müller", "user42", "7"])
def test_valid_names(name):
    assert is_valid_name(name)


@pytest.mark.parametrize("name", ["", "An a", "Ana!", "Ana\n", "ana_b", "Zoë", " Ana", None])
def test_invalid_names(name):
    assert not is_valid_name(name)


def test_known_codes_depend_on_direction():
    assert is_known_code("LUS")
    assert not is_known_code("LST")
    assert is_known_code("LST", Direction.TO_CLIENT)
    assert not is_known_code("MSG", Direction.TO_CLIENT)


def test_arity_rules():
    assert arity_ok("CON", "Ana", True)
    assert not arity_ok("CON", "", True)
    assert not arity_ok("MSG", "", False)
    assert arity_ok("MSG", "hello there", True)
    assert arity_ok("PRV", "Bob hi there", True)
    assert not arity_ok("PRV", "Bob", True)
    assert not arity_ok("PRV", "Bob ", True)
    assert not arity_ok("PRV", "Bob! hi", True)
    assert arity_ok("LUS", "", False)
    assert not arity_ok("EXI", "", True)


@pytest.mark.parametrize(
    "raw,valid",
    [
        ("CON Ana", True),
        ("CON An a", True),
        ("CON", False),
        ("MSG", False),
        ("LUS now", False),
        ("EXI", True),
        ("PRV Bob", False),
        ("HELLO", False),
    ],
)
def test_is_valid_command(raw, valid):
    assert is_valid_command(parse_command(raw)) is valid
