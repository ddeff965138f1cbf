#!/usr/bin/env python3
"""
ladder/cli.py - Command line interface for the ladder bot

Usage:
    ladderbot [--config FILE] serve [--host HOST] [--port PORT] [--db PATH]
    ladderbot channels [--db PATH]
    ladderbot standings <channel> [--db PATH]
    ladderbot export [--out FILE] [--db PATH]
"""

import argparse
import logging
import sys
from pathlib import Path

import yaml

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _load_config(args):
    from ladder.config import load_config

    config = load_config(Path(args.config) if args.config else None).apply_env()
    if getattr(args, "db", None):
        config.db_path = args.db
    return config


def _open_registry(config):
    """Read-only view of everything in the store."""
    from bot.db import LadderDB
    from ladder.registry import ChannelRegistry

    db = LadderDB(config.db_path)
    try:
        registry = ChannelRegistry(
            default_mode=config.defaults.challenge_mode,
            default_timeout=config.defaults.challenge_timeout,
        )
        registry.load(db.load_all())
    finally:
        db.close()
    return registry


def cmd_serve(args):
    """Start the HTTP bot server."""
    import uvicorn

    from bot.server import app

    config = _load_config(args)
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    logging.getLogger().setLevel(config.log_level)

    # Lifespan picks the config up from app state
    app.state.config = config
    logger.info(
        f"Starting ladder bot on {config.server.host}:{config.server.port} (db: {config.db_path})"
    )
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level="info")
    return 0


def cmd_channels(args):
    """List every channel in the store."""
    registry = _open_registry(_load_config(args))
    channel_ids = sorted(registry.channel_ids())
    if not channel_ids:
        print("No channels.")
        return 0
    for channel_id in channel_ids:
        settings = registry.get(channel_id).settings()
        print(f"{channel_id}  {settings.mode:<8} {settings.player_count} player(s)")
    return 0


def cmd_standings(args):
    """Print one channel's standings."""
    from ladder.challenges import MODE_PYRAMID
    from ladder.errors import LadderError
    from ladder.reports import render_standings

    registry = _open_registry(_load_config(args))
    try:
        engine = registry.get(args.channel)
    except LadderError as e:
        logger.error(str(e))
        return 1
    show_tiers = engine.settings().mode == MODE_PYRAMID
    print(render_standings(engine.standings(), show_tiers=show_tiers))
    return 0


def cmd_export(args):
    """Dump every channel snapshot as YAML."""
    registry = _open_registry(_load_config(args))
    text = yaml.safe_dump(registry.snapshots(), sort_keys=False)
    if args.out:
        Path(args.out).write_text(text)
        logger.info(f"Exported {len(registry)} channel(s) to {args.out}")
    else:
        sys.stdout.write(text)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="ladderbot",
        description="Challenge ladders for chat channels",
    )
    parser.add_argument("--config", default=None, help="Config file (default: ~/.ladderbot/config.toml)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP bot server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: from config)")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Server port (default: 8000)")
    serve_parser.add_argument("--db", default=None, help="SQLite database path (default: ladder.db)")
    serve_parser.set_defaults(func=cmd_serve)

    # channels command
    channels_parser = subparsers.add_parser("channels", help="List channels in the store")
    channels_parser.add_argument("--db", default=None, help="SQLite database path")
    channels_parser.set_defaults(func=cmd_channels)

    # standings command
    standings_parser = subparsers.add_parser("standings", help="Show a channel's standings")
    standings_parser.add_argument("channel", help="Channel id")
    standings_parser.add_argument("--db", default=None, help="SQLite database path")
    standings_parser.set_defaults(func=cmd_standings)

    # export command
    export_parser = subparsers.add_parser("export", help="Export every channel as YAML")
    export_parser.add_argument("--out", "-o", default=None, help="Output file (default: stdout)")
    export_parser.add_argument("--db", default=None, help="SQLite database path")
    export_parser.set_defaults(func=cmd_export)

    args = parser.parse_args(argv)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
