import argparse
import asyncio
import logging
import os
import threading
from urllib.parse import urlparse

from colorama import Fore, Style, init as colorama_init

from .client import ChatClient, ChatClientError, ConnectionStatus
from .command_types import ServerCommandType
from .conversations import GENERAL, ChatView
from .server import DEFAULT_PORT

TELL_COMMAND = "/tell "
LIST_COMMAND = "/list"
OPEN_COMMAND = "/open "
CHATS_COMMAND = "/chats"
CLOSE_COMMAND = "/quit"


def colored(kind: str, text: str) -> str:
    if kind == "error":
        return Fore.RED + text + Style.RESET_ALL
    if kind == "dm":
        return Fore.CYAN + text + Style.RESET_ALL
    if kind == "all":
        return Fore.GREEN + text + Style.RESET_ALL
    if kind == "system":
        return Fore.YELLOW + text + Style.RESET_ALL
    return text


def _resolve(future, line):
    if not future.done():
        future.set_result(line)


def _parse_server(uri_or_host: str | None, port: int | None) -> tuple[str, int]:
    if uri_or_host and uri_or_host.startswith("ws://"):
        p = urlparse(uri_or_host)
        return (p.hostname or "127.0.0.1", int(p.port or (port or DEFAULT_PORT)))
    host = uri_or_host or os.getenv("CLIENT_HOST", "127.0.0.1")
    return (host, int(port or int(os.getenv("CLIENT_PORT", str(DEFAULT_PORT)))))


class TerminalChat:
    def __init__(self, read_line=input):
        self.read_line = read_line
        self.view = ChatView()
        self.client = ChatClient(on_command=self.show, on_status=self.status)
        self.done = asyncio.Event()

    def _label(self, name: str) -> str:
        return "me" if name == self.client.name else name

    def status(self, status: ConnectionStatus, detail: str):
        if status is ConnectionStatus.ESTABLISHED:
            print(colored("system", f"Joined as {self.client.name}: {detail}"))
        elif status is ConnectionStatus.REJECTED:
            print(colored("error", f"Rejected: {detail}. Enter another name."))
        else:
            print(colored("system", "Disconnected"))
            self.done.set()

    def show(self, command):
        conv = self.view.apply(command, self.client.name)
        code = command.code
        if code == ServerCommandType.LST:
            print(colored("system", f"Online users: {', '.join(self.view.roster)}"))
        elif code == ServerCommandType.CON and self.client.joined:
            print(colored("system", f"{command.params} joined"))
        elif code == ServerCommandType.EXI:
            print(colored("system", f"{command.params} left"))
        elif code == ServerCommandType.NOK and self.client.joined:
            print(colored("error", command.params))
        elif conv is not None:
            sender, _, text = command.params.partition(" ")
            if conv.name == GENERAL:
                print(colored("all", f"{self._label(sender)}: {text}"))
            else:
                print(colored("dm", f"[private {conv.name}] {self._label(sender)}: {text}"))

    def _read_in_thread(self, loop, future):
        try:
            line = self.read_line()
        except EOFError:
            line = None
        try:
            loop.call_soon_threadsafe(_resolve, future, line)
        except RuntimeError:
            # the event loop finished while input() was blocked
            return

    async def _next_line(self):
        # input() cannot be interrupted, so it runs in a daemon thread raced
        # against the end of the connection
        loop = asyncio.get_running_loop()
        line = loop.create_future()
        threading.Thread(target=self._read_in_thread, args=(loop, line), daemon=True).start()
        closed = asyncio.ensure_future(self.done.wait())
        await asyncio.wait({line, closed}, return_when=asyncio.FIRST_COMPLETED)
        closed.cancel()
        if not line.done():
            line.cancel()
            return None
        return line.result()

    async def sender(self, name: str | None):
        try:
            if name:
                await self.client.join(name)
            while not self.done.is_set():
                line = await self._next_line()
                if line is None:
                    return
                await self.handle_line(line.strip())
        except ChatClientError as e:
            print(colored("error", f"Cannot send: {e}"))

    async def handle_line(self, line: str):
        if not line:
            return
        if not self.client.joined:
            await self.client.join(line)
        elif line == CLOSE_COMMAND:
            await self.client.leave()
        elif line == LIST_COMMAND:
            await self.client.request_users()
        elif line == CHATS_COMMAND:
            for entry in self.view.summary():
                print(colored("system", entry))
        elif line.startswith(TELL_COMMAND):
            peer, _, text = line[len(TELL_COMMAND):].partition(" ")
            if not text:
                print(colored("error", "usage: /tell <user> <message>"))
                return
            self.view.note_outgoing_private(peer, text)
            await self.client.tell(peer, text)
        elif line.startswith(OPEN_COMMAND):
            conv = self.view.open(line[len(OPEN_COMMAND):].strip())
            for message in conv.messages:
                print(message)
        else:
            await self.client.say(line)

    async def run(self, host: str, port: int, name: str | None):
        await self.client.connect(host, port)
        print(colored("system", f"Connected to ws://{host}:{port}"))
        if not name:
            print(colored("system", "Enter a name to join"))
        listener = asyncio.create_task(self.client.listen())
        try:
            await self.sender(name)
            if not self.done.is_set():
                await self.client.close()
            await listener
        finally:
            listener.cancel()
            await self.client.close()


def main(argv=None):
    colorama_init(autoreset=True)
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    print(colored("system", "Commands:"))
    print("  /tell <user> <msg> - Send private message")
    print("  /list              - List online users")
    print("  /open <chat>       - Show a conversation (general or a user)")
    print("  /chats             - List conversations with unread counts")
    print("  /quit              - Exit")

    ap = argparse.ArgumentParser(description="Chat relay terminal client")
    ap.add_argument("--server", help="ws://host:port of server")
    ap.add_argument("--host", help="Server host (if --server not given)")
    ap.add_argument("--port", type=int, help=f"Server port (default {DEFAULT_PORT})")
    ap.add_argument("--name", default=os.getenv("CHAT_USER"), help="Name to join with")
    args = ap.parse_args(argv)

    host, port = _parse_server(args.server or args.host, args.port)
    try:
        asyncio.run(TerminalChat().run(host, port, args.name))
    except KeyboardInterrupt:
        pass
    except OSError as e:
        print(colored("error", f"Cannot connect to {host}:{port}: {e}"))


if __name__ == "__main__":
    main()
