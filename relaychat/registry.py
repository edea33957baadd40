import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

import websockets


class SessionState(Enum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    TERMINATED = "terminated"


class Session:
    """Server-side state of one connected peer.

    The WebSocket connection is both directions of the peer's stream. The
    name is assigned once, when the Registry accepts the registration.
    """

    def __init__(self, ws):
        self.ws = ws
        self.name: Optional[str] = None
        self.state = SessionState.UNREGISTERED
        self.peer = getattr(ws, "remote_address", None)

    @property
    def registered(self) -> bool:
        return self.state is SessionState.REGISTERED

    @property
    def label(self) -> str:
        return self.name or f"unregistered peer {self.peer}"

    def assign_name(self, name: str):
        if self.name is not None:
            raise RuntimeError(f"session already registered as {self.name}")
        self.name = name
        self.state = SessionState.REGISTERED

    async def send(self, raw: str) -> bool:
        try:
            await self.ws.send(raw)
            return True
        except (websockets.exceptions.ConnectionClosed, OSError) as e:
            logging.warning("Failed to send to %s: %s", self.label, e)
            return False

    async def close(self):
        self.state = SessionState.TERMINATED
        try:
            await self.ws.close()
        except (websockets.exceptions.ConnectionClosed, OSError) as e:
            logging.info("Error closing connection to %s: %s", self.label, e)


MessageSource = Union[str, Callable[[Session], str]]


class Registry:
    """Name-keyed table of registered sessions.

    Every operation holds the single lock from start to finish, so
    check-then-insert and snapshot-then-send are atomic. Sends happen while
    the lock is held: one slow peer delays everybody's registry operations.
    """

    def __init__(self):
        # name -> Session, in registration order
        self._sessions: Dict[str, Session] = {}
        self.lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, name) -> bool:
        return name in self._sessions

    async def _fan_out(self, message: MessageSource, exclude: Optional[Session] = None) -> int:
        delivered = 0
        for session in list(self._sessions.values()):
            if session is exclude:
                continue
            raw = message(session) if callable(message) else message
            if await session.send(raw):
                delivered += 1
        return delivered

    async def try_register(
        self,
        session: Session,
        name: str,
        reply: Optional[str] = None,
        announce: Optional[str] = None,
    ) -> bool:
        async with self.lock:
            if name in self._sessions:
                return False
            if reply is not None:
                await session.send(reply)
            # a join notice only goes out for a name that is already in the table
            session.assign_name(name)
            self._sessions[name] = session
            if announce is not None:
                await self._fan_out(announce, exclude=session)
        return True

    async def unregister(self, session: Session, farewell: Optional[str] = None) -> bool:
        async with self.lock:
            if session.name is None or self._sessions.get(session.name) is not session:
                return False
            del self._sessions[session.name]
            if farewell is not None:
                await self._fan_out(farewell)
        return True

    async def broadcast(self, message: MessageSource, exclude: Optional[Session] = None) -> int:
        async with self.lock:
            return await self._fan_out(message, exclude)

    async def send_private(self, sender: Session, target_name: str, message: str) -> bool:
        async with self.lock:
            target = self._sessions.get(target_name)
            if target is None or target is sender:
                return False
            await target.send(message)
            await sender.send(message)
        return True

    async def list_names(self) -> List[str]:
        async with self.lock:
            return list(self._sessions.keys())

    async def find(self, name: str) -> Optional[Session]:
        async with self.lock:
            return self._sessions.get(name)
