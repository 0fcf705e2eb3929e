"""Out-of-band management: route cache and IP blocklist."""

import argparse
import sys

from .blocklist import IPBlocklist
from .cache import RouteCache
from .config import Settings
from .storage import build_store


def main(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    parser = argparse.ArgumentParser(prog="waypoint", description="Waypoint maintenance commands.")
    parser.add_argument("--env-file", default=".env", help="Path to the .env file")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("clear-cache", help="Remove every cached route match")

    block_parser = subparsers.add_parser("block", help="Block a client IP")
    block_parser.add_argument("ip")
    block_parser.add_argument("--reason", default="")

    unblock_parser = subparsers.add_parser("unblock", help="Unblock a client IP")
    unblock_parser.add_argument("ip")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    settings = settings if settings is not None else Settings.load(args.env_file)

    if args.command == "clear-cache":
        removed = RouteCache(settings.route_cache_dir).clear()
        print(f"Removed {removed} cached route(s) from {settings.route_cache_dir}")
        return 0

    store = build_store(settings.ip_block_driver, settings.ip_block_file, settings.redis_url, "waypoint:blocked:")
    if store is None:
        print(f"Unsupported ip block driver: {settings.ip_block_driver}", file=sys.stderr)
        return 1
    blocklist = IPBlocklist(store)
    if args.command == "block":
        blocklist.block(args.ip, args.reason)
        print(f"Blocked {args.ip}")
    else:
        blocklist.unblock(args.ip)
        print(f"Unblocked {args.ip}")
    return 0
