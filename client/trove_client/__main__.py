import argparse
import asyncio
import json
import logging
import sys

from trove_client.config import ClientSettings
from trove_client.device import DeviceIdentity
from trove_client.offline_queue import OfflineQueue
from trove_client.storage import JsonFileStore
from trove_client.sync import SyncTriggers
from trove_client.transport import HttpTransport


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trove_client", description="Capture links offline and sync them to Trove.")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("device-id", help="print this installation's device id")
    enqueue = sub.add_parser("enqueue", help="queue a link locally")
    enqueue.add_argument("url")
    enqueue.add_argument("--flush", action="store_true", help="try to sync right away")
    sub.add_parser("flush", help="send queued links to the server")
    sub.add_parser("peek", help="list queued links")
    sub.add_parser("clear", help="drop all queued links")
    watch = sub.add_parser("watch", help="flush whenever the server is reachable")
    watch.add_argument("--interval", type=float, default=None)
    return parser


async def run(args, settings: ClientSettings) -> int:
    store = JsonFileStore(settings.STATE_FILE)
    transport = HttpTransport(
        settings.SERVER_URL,
        settings.HEALTH_URL,
        timeout=settings.REQUEST_TIMEOUT,
        ping_timeout=settings.PING_TIMEOUT,
    )
    queue = OfflineQueue(store, transport)
    try:
        if args.command == "device-id":
            print(DeviceIdentity(store).get_device_id())
        elif args.command == "enqueue":
            try:
                queue.enqueue(args.url, DeviceIdentity(store).get_device_id())
            except ValueError as e:
                print(f"error: {e}", file=sys.stderr)
                return 2
            print(f"queued ({len(queue.peek_all())} pending)")
            if args.flush:
                print(f"flushed {await queue.flush_queue()}")
        elif args.command == "flush":
            print(f"flushed {await queue.flush_queue()}")
        elif args.command == "peek":
            print(json.dumps(queue.peek_all(), indent=2))
        elif args.command == "clear":
            queue.clear_queue()
        elif args.command == "watch":
            await SyncTriggers(queue, transport).watch(args.interval or settings.WATCH_INTERVAL)
    finally:
        await transport.aclose()
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        return asyncio.run(run(args, ClientSettings()))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
