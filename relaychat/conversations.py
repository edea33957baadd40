from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .command_types import ServerCommandType
from .protocol import Command, LIST_SEPARATOR

GENERAL = "general"


@dataclass
class Conversation:
    name: str
    messages: List[str] = field(default_factory=list)
    unread: int = 0

    def __str__(self):
        return f"{self.name} ({self.unread})"


class ChatView:
    """Roster and per-conversation history built from server commands."""

    def __init__(self):
        self.roster: List[str] = []
        self.conversations: Dict[str, Conversation] = {GENERAL: Conversation(GENERAL)}
        self.active = GENERAL
        # (peer, text) of private messages sent and not echoed back yet
        self._outgoing: List[Tuple[str, str]] = []

    def conversation(self, name: str) -> Conversation:
        if name not in self.conversations:
            self.conversations[name] = Conversation(name)
        return self.conversations[name]

    def open(self, name: str) -> Conversation:
        conv = self.conversation(name)
        conv.unread = 0
        self.active = name
        return conv

    def summary(self) -> List[str]:
        """One "name (unread)" line per conversation, the active one marked."""
        return [
            ("* " if name == self.active else "  ") + str(conv)
            for name, conv in self.conversations.items()
        ]

    def note_outgoing_private(self, peer: str, text: str):
        self._outgoing.append((peer, text))

    def _echo_peer(self, text: str) -> Optional[str]:
        # Echoes come back in send order; unrouted messages never echo
        for i, (peer, sent) in enumerate(self._outgoing):
            if sent == text:
                del self._outgoing[: i + 1]
                return peer
        return None

    def _file(self, name: str, line: str) -> Conversation:
        conv = self.conversation(name)
        conv.messages.append(line)
        if name != self.active:
            conv.unread += 1
        return conv

    def apply(self, command: Command, own_name: Optional[str] = None) -> Optional[Conversation]:
        """Update the view; returns the conversation a message was filed in."""
        code = command.code
        if code == ServerCommandType.LST:
            self.roster = [n for n in command.params.split(LIST_SEPARATOR) if n]
        elif code == ServerCommandType.CON:
            if command.params not in self.roster:
                self.roster.append(command.params)
        elif code == ServerCommandType.EXI:
            if command.params in self.roster:
                self.roster.remove(command.params)
        elif code == ServerCommandType.CHT:
            sender, _, text = command.params.partition(" ")
            return self._file(GENERAL, f"{sender}: {text}")
        elif code == ServerCommandType.PRV:
            sender, _, text = command.params.partition(" ")
            peer = self._echo_peer(text) if sender == own_name else None
            if peer is not None:
                return self._file(peer, f"{sender}: {text}")
            return self._file(sender, f"{sender}: {text}")
        return None
