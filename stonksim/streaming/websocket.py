"""
Pure asyncio WebSocket server (no threading).
Each client gets an independent buffered tick stream.
"""
import asyncio
import json
import websockets
from typing import Set, Optional, TYPE_CHECKING
import logging

from .data_stream import BoundedTickStream

if TYPE_CHECKING:
    from ..session import TradingSession

logger = logging.getLogger(__name__)

class AsyncWebSocketServer:
    """
    WebSocket server pushing one message per price tick.

    Stream Flow:
    1. The session publishes a tick payload to its tick stream
    2. Each client connection subscribes with its own bounded queue
    3. A bridge task forwards payloads as JSON; a slow client only
       drops its own messages
    Clients may send {"type": "command", "action": "pause" | "resume"}.
    """

    def __init__(
        self,
        tick_stream: BoundedTickStream,
        session: Optional['TradingSession'] = None,
        host: str = 'localhost',
        port: int = 8765
    ):
        self.tick_stream = tick_stream
        self.session = session
        self.host = host
        self.port = port

        self.clients: Set = set()

        # Stats
        self.total_connections = 0
        self.messages_sent = 0

        logger.info(f"WebSocket server initialized on {host}:{port}")

    # ========================================================================
    # CONNECTION HANDLER
    # ========================================================================

    async def handler(self, websocket):
        """Handle individual client connection"""
        client_id = f"{websocket.remote_address[0]}:{websocket.remote_address[1]}"
        logger.info(f"Client connected: {client_id}")

        self.clients.add(websocket)
        self.total_connections += 1

        if self.session is not None:
            await websocket.send(json.dumps({'type': 'state', 'state': self.session.get_state()}))

        message_task = asyncio.create_task(self._handle_client_messages(websocket, client_id))
        tick_task = asyncio.create_task(self._bridge_tick_stream(websocket, client_id))

        try:
            await asyncio.gather(message_task, tick_task, return_exceptions=True)
        except asyncio.CancelledError:
            logger.info(f"Client handler cancelled: {client_id}")
        finally:
            message_task.cancel()
            tick_task.cancel()
            self.clients.discard(websocket)
            logger.info(f"Client cleaned up: {client_id}")

    async def _handle_client_messages(self, websocket, client_id: str):
        """Handle incoming messages from client"""
        try:
            async for message in websocket:
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    logger.error(f"Invalid JSON from client {client_id}")
                    continue
                await self._process_client_command(websocket, data, client_id)
        except websockets.ConnectionClosed:
            logger.info(f"Client {client_id} disconnected")
        finally:
            # A disconnect must not leave the session held by this client
            if self.session is not None:
                self.session.resume(f"ws:{client_id}")

    async def _process_client_command(self, websocket, data: dict, client_id: str):
        if data.get('type') != 'command' or self.session is None:
            return

        action = data.get('action')
        reason = f"ws:{client_id}"
        if action == 'pause':
            self.session.pause(reason)
        elif action == 'resume':
            self.session.resume(reason)
        else:
            logger.warning(f"Unknown command from {client_id}: {action}")
            return

        await websocket.send(json.dumps({
            'type': 'command_response',
            'action': action,
            'paused': self.session.is_paused
        }))

    async def _bridge_tick_stream(self, websocket, client_id: str):
        """Bridge tick stream directly to WebSocket client"""
        try:
            logger.info(f"Starting tick bridge for client {client_id}")
            async for payload in self.tick_stream.subscribe():
                try:
                    await websocket.send(json.dumps(payload))
                    self.messages_sent += 1
                except websockets.ConnectionClosed:
                    logger.info(f"Client {client_id} disconnected during tick bridge")
                    break
        except asyncio.CancelledError:
            logger.debug(f"Tick bridge cancelled for client {client_id}")

    # ========================================================================
    # SERVER CONTROL
    # ========================================================================

    async def start(self):
        """Start WebSocket server"""
        logger.info(f"Starting WebSocket server on {self.host}:{self.port}")

        async with websockets.serve(self.handler, self.host, self.port):
            logger.info("WebSocket server running")
            await asyncio.Future()  # Run forever

    async def shutdown(self):
        """Graceful shutdown"""
        logger.info("Shutting down WebSocket server...")

        close_tasks = [ws.close() for ws in self.clients]
        await asyncio.gather(*close_tasks, return_exceptions=True)
        self.clients.clear()

        logger.info("WebSocket server shutdown complete")

    # ========================================================================
    # STATISTICS
    # ========================================================================

    def get_stats(self) -> dict:
        """Get server statistics"""
        return {
            'active_clients': len(self.clients),
            'total_connections': self.total_connections,
            'messages_sent': self.messages_sent,
            'stream_stats': self.tick_stream.get_stats().__dict__
        }
