"""
Trading terminal session runner.
Boots a session (restoring a snapshot if present) and optionally serves
the HTTP API and the WebSocket tick stream next to it.
"""
import asyncio
import logging
import argparse
from decimal import Decimal
from pathlib import Path
from dataclasses import replace

import uvicorn

from .config import SessionConfig, PRESETS, DEFAULT_SNAPSHOT_PATH, apply_config_preset
from .session import TradingSession
from .streaming.websocket import AsyncWebSocketServer
from .api.server import create_app

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def parse_arguments(argv=None):
    """Parse command-line arguments for session configuration."""
    parser = argparse.ArgumentParser(
        description="Stock/bond trading terminal simulation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Configuration preset
    parser.add_argument(
        '--config',
        choices=sorted(PRESETS),
        default='default',
        help='Preset applied on top of the individual flags: "fast" runs 10x, "headless" runs unthrottled without a snapshot file.'
    )

    # Session
    parser.add_argument(
        '--duration',
        type=float,
        default=None,
        help='Simulated seconds to run (default: until interrupted)'
    )
    parser.add_argument(
        '--speed-multiplier',
        type=float,
        default=1.0,
        help='Simulation speed (1.0 = real-time, 0.0 = unlimited)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for a reproducible market'
    )
    parser.add_argument(
        '--initial-cash',
        type=str,
        default='100000',
        help='Starting cash for a fresh session'
    )
    parser.add_argument(
        '--snapshot-path',
        type=Path,
        default=DEFAULT_SNAPSHOT_PATH,
        help='Session snapshot file'
    )
    parser.add_argument(
        '--no-snapshot',
        action='store_true',
        help='Neither load nor save a snapshot'
    )
    parser.add_argument(
        '--reset',
        action='store_true',
        help='Delete any saved session before starting'
    )

    # Servers
    parser.add_argument(
        '--host',
        default='localhost',
        help='Bind address for the API and WebSocket servers'
    )
    parser.add_argument(
        '--api-port',
        type=int,
        default=None,
        help='Serve the HTTP API on this port'
    )
    parser.add_argument(
        '--ws-port',
        type=int,
        default=None,
        help='Serve the WebSocket tick stream on this port'
    )

    # Logging
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level'
    )

    return parser.parse_args(argv)

def build_config(args) -> SessionConfig:
    config = SessionConfig(
        initial_cash=Decimal(args.initial_cash),
        speed_multiplier=args.speed_multiplier,
        snapshot_path=None if args.no_snapshot else args.snapshot_path,
        seed=args.seed
    )
    return apply_config_preset(config, args.config)

async def run_session(args):
    """Run the session and any requested servers until the session ends"""

    logger.info("=" * 80)
    logger.info("STONKSIM TRADING TERMINAL")
    logger.info("=" * 80)

    config = build_config(args)
    session = TradingSession(config)
    if args.reset:
        session.reset()

    servers = []
    tasks = []

    if args.ws_port is not None:
        websocket_server = AsyncWebSocketServer(
            tick_stream=session.tick_stream,
            session=session,
            host=args.host,
            port=args.ws_port
        )
        servers.append(websocket_server)
        tasks.append(asyncio.create_task(websocket_server.start()))
        logger.info(f"WebSocket stream: ws://{args.host}:{args.ws_port}")

    api_server = None
    if args.api_port is not None:
        api_server = uvicorn.Server(uvicorn.Config(
            create_app(session),
            host=args.host,
            port=args.api_port,
            log_level=args.log_level.lower()
        ))
        tasks.append(asyncio.create_task(api_server.serve()))
        logger.info(f"HTTP API: http://{args.host}:{args.api_port}/docs")

    logger.info(f"Simulation speed: {config.speed_multiplier}x")
    logger.info(f"Duration: {args.duration or 'unlimited'} seconds")
    logger.info(f"Snapshot: {config.snapshot_path or 'disabled'}")
    logger.info("Press Ctrl+C to stop")

    try:
        await session.run(duration_seconds=args.duration)
    finally:
        logger.info("Cleaning up...")
        if api_server is not None:
            api_server.should_exit = True
        for server in servers:
            await server.shutdown()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        stats = session.get_stats()
        logger.info(
            f"Processed {stats['time_engine']['events_processed']} events, "
            f"{stats['ai_trades']} AI trades, {stats['events_generated']} market events"
        )
        logger.info(f"Final total assets: ${session.total_assets():.2f}")

# ============================================================================
# MAIN
# ============================================================================

def main(argv=None):
    """Entry point"""

    args = parse_arguments(argv)

    logger.info(f"Using configuration: '{args.config}'")

    # Configure logging level
    logging.getLogger().setLevel(getattr(logging, args.log_level))

    try:
        asyncio.run(run_session(args))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")

if __name__ == "__main__":
    main()
