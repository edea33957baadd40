import argparse
import asyncio
import logging
import os
import signal
import sys
from urllib.parse import urlparse

from .server import DEFAULT_HOST, DEFAULT_PORT, MAX_MESSAGE_SIZE, main_loop


def _parse_bind(bind_uri: str) -> tuple[str, int]:
    # Accept ws://host:port, host:port, :port or just port
    if bind_uri.startswith("ws://"):
        p = urlparse(bind_uri)
        return p.hostname or DEFAULT_HOST, int(p.port or DEFAULT_PORT)
    if ":" in bind_uri:
        host, port = bind_uri.rsplit(":", 1)
        return host or DEFAULT_HOST, int(port)
    return DEFAULT_HOST, int(bind_uri)


def _parse_ping_interval(value: str):
    # 0, "off" or empty disables keepalive pings
    if not value or value.lower() == "off":
        return None
    interval = float(value)
    return interval if interval > 0 else None


async def _run(host: str, port: int, max_size: int, ping_interval) -> None:
    task = asyncio.create_task(main_loop(host, port, max_size=max_size, ping_interval=ping_interval))
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops lack add_signal_handler
            pass

    stop_task = asyncio.create_task(stop.wait())
    done, _ = await asyncio.wait({task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    stop_task.cancel()
    if task in done:
        # Bind failures surface here as OSError
        task.result()
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


def main(argv=None):
    parser = argparse.ArgumentParser(description="Chat relay server")
    parser.add_argument(
        "--bind",
        default=os.getenv("BIND", f"ws://{DEFAULT_HOST}:{DEFAULT_PORT}"),
        help="Bind address ws://host:port, host:port or port",
    )
    parser.add_argument(
        "--max-size",
        type=int,
        default=int(os.getenv("MAX_SIZE", str(MAX_MESSAGE_SIZE))),
        help="Largest accepted message in bytes",
    )
    parser.add_argument(
        "--ping-interval",
        default=os.getenv("PING_INTERVAL", "off"),
        help="Seconds between keepalive pings, or 'off' (default)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level name",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(message)s"
    )

    host, port = _parse_bind(args.bind)
    try:
        asyncio.run(_run(host, port, args.max_size, _parse_ping_interval(args.ping_interval)))
    except OSError as e:
        logging.error("Cannot listen on %s:%s: %s", host, port, e)
        sys.exit(1)
    except KeyboardInterrupt:
        pass
    logging.info("Server shutdown complete")


if __name__ == "__main__":
    main()
