"""CLI entry point for launching a gossip discovery node.

Usage:
    gossip-discovery --peers 10.0.0.2,10.0.0.3
    gossip-discovery --config node_config.json --port 7947
    gossip-discovery --broadcast --status-port 8946

Environment variables (applied after the config file, before flags):
    GOSSIP_HOST:      Bind address
    GOSSIP_PORT:      Bind port
    GOSSIP_PEERS:     Comma-separated seed peer addresses
    GOSSIP_INTERVAL:  Base broadcast interval in seconds
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Mapping

from gossip_discovery.errors import GossipError
from gossip_discovery.node import DEFAULT_INTERVAL, DEFAULT_PORT, GossipNode, NodeConfig

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Launch a gossip peer discovery node",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to JSON config file",
    )
    parser.add_argument(
        "--host",
        help="Bind address (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help=f"Bind port (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--dest-port",
        type=int,
        help="Port to gossip to on each peer (default: bind port)",
    )
    parser.add_argument(
        "--peers",
        help="Comma-separated seed peer addresses",
    )
    parser.add_argument(
        "--interval", "-i",
        type=float,
        help=f"Base broadcast interval in seconds (default: {DEFAULT_INTERVAL})",
    )
    parser.add_argument(
        "--broadcast",
        action="store_true",
        default=None,
        help="Seed with the local broadcast address when no peers are given",
    )
    parser.add_argument(
        "--status-port",
        type=int,
        help="Serve /health, /peers and /stats over HTTP on this port",
    )
    parser.add_argument(
        "--log-level", "-l",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    return parser.parse_args(argv)


def _split_peers(value: str | list[str]) -> list[str]:
    if isinstance(value, list):
        return value
    return [p.strip() for p in value.split(",") if p.strip()]


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect config overrides from ``GOSSIP_*`` environment variables."""
    overrides: dict[str, Any] = {}
    if environ.get("GOSSIP_HOST"):
        overrides["host"] = environ["GOSSIP_HOST"]
    if environ.get("GOSSIP_PORT"):
        overrides["port"] = int(environ["GOSSIP_PORT"])
    if environ.get("GOSSIP_PEERS"):
        overrides["seed_peers"] = _split_peers(environ["GOSSIP_PEERS"])
    if environ.get("GOSSIP_INTERVAL"):
        overrides["interval"] = float(environ["GOSSIP_INTERVAL"])
    return overrides


def arg_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.host:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.dest_port is not None:
        overrides["dest_port"] = args.dest_port
    if args.peers:
        overrides["seed_peers"] = _split_peers(args.peers)
    if args.interval is not None:
        overrides["interval"] = args.interval
    if args.broadcast:
        overrides["use_broadcast"] = True
    if args.status_port is not None:
        overrides["status_port"] = args.status_port
    return overrides


def load_config(config_path: str | None, *overrides: dict[str, Any]) -> NodeConfig:
    """Load node configuration from JSON, then apply overrides in order."""
    raw: dict[str, Any] = {}
    if config_path:
        path = Path(config_path).resolve()
        if not path.exists():
            print(f"Error: config file not found: {path}", file=sys.stderr)
            sys.exit(1)
        with open(path) as f:
            raw = json.load(f)

    for layer in overrides:
        raw.update(layer)

    return NodeConfig(
        host=raw.get("host", "0.0.0.0"),
        port=int(raw.get("port", DEFAULT_PORT)),
        dest_port=raw.get("dest_port"),
        interval=float(raw.get("interval", DEFAULT_INTERVAL)),
        seed_peers=_split_peers(raw.get("seed_peers", [])),
        use_broadcast=bool(raw.get("use_broadcast", False)),
        status_host=raw.get("status_host", "127.0.0.1"),
        status_port=raw.get("status_port"),
    )


async def run_node(node: GossipNode) -> None:
    """Start the node and run until interrupted."""
    await node.start()

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def handle_signal() -> None:
        print("\nShutting down...")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    stopper = asyncio.create_task(stop_event.wait())
    finished = asyncio.create_task(node.wait_stopped())
    await asyncio.wait({stopper, finished}, return_when=asyncio.FIRST_COMPLETED)
    stopper.cancel()
    finished.cancel()
    await node.stop(wait=True)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config = load_config(args.config, env_overrides(os.environ), arg_overrides(args))

    try:
        node = GossipNode(config)
    except GossipError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print("=" * 60)
    print("  Gossip Discovery Node")
    print("=" * 60)
    print(f"  Bind: {config.host}:{config.port}")
    print(f"  Seed peers: {config.seed_peers}")
    print(f"  Interval: {config.interval}s")
    if config.status_port is not None:
        print(f"  Status: http://{config.status_host}:{config.status_port}/health")
    print("=" * 60 + "\n")

    try:
        asyncio.run(run_node(node))
    except GossipError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
