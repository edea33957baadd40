from relaychat.conversations import GENERAL, ChatView
from relaychat.protocol import Command


def cmd(code, params):
    return Command(code, params, True)


def test_roster_follows_list_join_and_leave():
    view = ChatView()
    view.apply(cmd("LST", "Ana,Bob"))
    view.apply(cmd("CON", "Cris"))
    view.apply(cmd("CON", "Cris"))
    view.apply(cmd("EXI", "Ana"))
    assert view.roster == ["Bob", "Cris"]


def test_general_chat_is_filed_in_general():
    view = ChatView()
    conv = view.apply(cmd("CHT", "Bob hola a todos"), own_name="Ana")
    assert conv.name == GENERAL
    assert conv.messages == ["Bob: hola a todos"]
    assert conv.unread == 0


def test_private_messages_count_as_unread_until_opened():
    view = ChatView()
    view.apply(cmd("PRV", "Bob psst"), own_name="Ana")
    view.apply(cmd("PRV", "Bob are you there"), own_name="Ana")
    assert view.conversation("Bob").unread == 2
    assert str(view.conversation("Bob")) == "Bob (2)"

    conv = view.open("Bob")
    assert conv.unread == 0
    view.apply(cmd("PRV", "Bob ok"), own_name="Ana")
    assert conv.unread == 0
    assert view.conversation(GENERAL).unread == 0


def test_private_echo_is_filed_with_the_recipient():
    view = ChatView()
    view.note_outgoing_private("Zoe", "lost message")
    view.note_outgoing_private("Bob", "see you")
    view.apply(cmd("PRV", "Ana see you"), own_name="Ana")
    assert view.conversation("Bob").messages == ["Ana: see you"]
    assert "Ana" not in view.conversations


def test_summary_lists_conversations_with_unread_counts():
    view = ChatView()
    view.apply(cmd("CHT", "Bob hola"), own_name="Ana")
    view.apply(cmd("PRV", "Bob psst"), own_name="Ana")
    view.apply(cmd("PRV", "Cris hey"), own_name="Ana")
    view.apply(cmd("PRV", "Cris again"), own_name="Ana")
    assert view.summary() == ["* general (0)", "  Bob (1)", "  Cris (2)"]

    view.open("Cris")
    assert view.summary() == ["  general (0)", "  Bob (1)", "* Cris (0)"]
