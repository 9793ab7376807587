"""
Command-line interface.

    parcelgraph cid 0x<64 hex>
    parcelgraph fetch <cid> [--metadata]
    parcelgraph process --content-hash ... --submitter ... --property-hash ...
    parcelgraph process --event-file event.json

Logs go to stderr; command output (JSON) goes to stdout.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from parcelgraph.codec import bytes32_to_cid
from parcelgraph.gateway import GatewayResolver, ResolutionTier
from parcelgraph.ingestion.pipeline import EventProcessor
from parcelgraph.shared.config import StoreBackend, load_config
from parcelgraph.shared.errors import ConfigurationError, MalformedInputError, TransientFetchError
from parcelgraph.shared.observability import get_logger, setup_logging
from parcelgraph.store import InMemoryRecordStore, RedisRecordStore

logger = get_logger(__name__)


def cmd_cid(args) -> int:
    """Print the CID for a bytes32 content hash."""
    try:
        print(bytes32_to_cid(args.hash))
    except MalformedInputError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    return 0


async def _fetch(args) -> int:
    config, settings = load_config()
    tier = ResolutionTier.METADATA if args.metadata else ResolutionTier.CONTENT
    async with GatewayResolver.from_config(config, settings) as resolver:
        try:
            payload = await resolver.resolve(args.cid, tier=tier)
        except TransientFetchError as exc:
            print(str(exc), file=sys.stderr)
            return 1
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def cmd_fetch(args) -> int:
    """Resolve a CID through the configured gateways and print its JSON."""
    try:
        return asyncio.run(_fetch(args))
    except (ConfigurationError, FileNotFoundError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2


def _event_from_args(args) -> Dict[str, Any]:
    if args.event_file:
        return json.loads(Path(args.event_file).read_text())
    event: Dict[str, Any] = {
        "contentHash": args.content_hash,
        "submitter": args.submitter,
        "propertyHash": args.property_hash,
    }
    if args.timestamp is not None:
        event["timestamp"] = args.timestamp
    return event


async def _process(event: Dict[str, Any]) -> int:
    config, settings = load_config()
    if config.store.backend is StoreBackend.REDIS:
        store = RedisRecordStore.from_url(settings.redis_url, config.store.key_prefix)
    else:
        store = InMemoryRecordStore()

    try:
        async with GatewayResolver.from_config(config, settings) as resolver:
            processor = EventProcessor.from_config(config, resolver, store)
            result = await processor.process(event)
    finally:
        if isinstance(store, RedisRecordStore):
            await store.aclose()

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


def cmd_process(args) -> int:
    """Run one inbound event through the pipeline."""
    if not args.event_file and not (
        args.content_hash and args.submitter and args.property_hash
    ):
        print(
            "process needs --event-file or all of --content-hash, --submitter, "
            "--property-hash",
            file=sys.stderr,
        )
        return 2
    try:
        event = _event_from_args(args)
    except (OSError, ValueError) as exc:
        # Unreadable file or invalid JSON
        print(f"Cannot read event file: {exc}", file=sys.stderr)
        return 2
    try:
        return asyncio.run(_process(event))
    except (ConfigurationError, FileNotFoundError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parcelgraph",
        description="Resolve property submissions into normalized records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    cid_parser = subparsers.add_parser("cid", help="Derive the CID for a content hash")
    cid_parser.add_argument("hash", help="0x-prefixed 32-byte hex hash")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch a CID via the gateways")
    fetch_parser.add_argument("cid", help="Content identifier")
    fetch_parser.add_argument(
        "--metadata",
        action="store_true",
        help="Use the metadata pass cap instead of the content budget",
    )

    process_parser = subparsers.add_parser("process", help="Process one event")
    process_parser.add_argument("--event-file", help="JSON file holding the event")
    process_parser.add_argument("--content-hash", help="bytes32 content hash")
    process_parser.add_argument("--submitter", help="Submitter address")
    process_parser.add_argument("--property-hash", help="bytes32 property hash")
    process_parser.add_argument("--timestamp", type=int, help="Block timestamp")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.log_level or "WARNING")

    if args.command == "cid":
        return cmd_cid(args)
    elif args.command == "fetch":
        return cmd_fetch(args)
    elif args.command == "process":
        return cmd_process(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
