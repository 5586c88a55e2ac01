"""
WebSocket connection manager for the receptionist UI.

This module implements the server side of the ``/ws`` UI protocol:
- Accept UI connections and register them for call event broadcasts
- Route incoming messages to the appropriate handler function
- Send each handler's response back to the requesting client

The WebSocketManager is the only entry point through which a UI can start or
stop a call; call progress is pushed to every connected client.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from receptionist.config.constants import (
    LOGGER_NAME,
    MESSAGE_TYPE_CALL_START,
    MESSAGE_TYPE_CALL_STATUS,
    MESSAGE_TYPE_CALL_STOP,
)
from receptionist.handlers.call_handlers import (
    handle_call_start,
    handle_call_status,
    handle_call_stop,
)
from receptionist.models.call_registry import CallRegistry
from receptionist.models.ui_messages import BaseUIMessage, ErrorResponse

logger = logging.getLogger(LOGGER_NAME)

# Type hint for handler functions
HandlerFunc = Callable[
    [Dict[str, Any], WebSocket, CallRegistry],
    Awaitable[Optional[BaseUIMessage]],
]


class WebSocketManager:
    """Manages UI WebSocket connections and routes messages to call handlers.

    Each message type is routed to a specific handler function based on the
    message's "type" field. Unknown types and malformed JSON are answered with
    an error message; the connection stays open.
    """

    def __init__(self, registry: Optional[CallRegistry] = None):
        self.registry = registry or CallRegistry()

        self.handlers: Dict[str, HandlerFunc] = {
            MESSAGE_TYPE_CALL_START: handle_call_start,
            MESSAGE_TYPE_CALL_STOP: handle_call_stop,
            MESSAGE_TYPE_CALL_STATUS: handle_call_status,
        }

    async def _send(self, websocket: WebSocket, message: BaseUIMessage) -> None:
        await websocket.send_text(message.model_dump_json())

    async def handle_message(self, websocket: WebSocket, data: str) -> None:
        """Decode one UI message, run its handler and send the response."""
        try:
            message_dict = json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"Received invalid JSON from UI: {data[:100]}")
            await self._send(websocket, ErrorResponse(reason="Invalid JSON"))
            return
        if not isinstance(message_dict, dict):
            await self._send(websocket, ErrorResponse(reason="Invalid message format"))
            return

        message_type = message_dict.get("type")
        handler = self.handlers.get(message_type)
        if handler is None:
            logger.warning(f"Unhandled UI message type received: {message_type}")
            await self._send(websocket, ErrorResponse(reason=f"Unknown message type: {message_type}"))
            return

        logger.info(f"Received UI message type: {message_type}")
        response = await handler(message_dict, websocket, self.registry)
        if response is not None:
            await self._send(websocket, response)
            logger.info(f"Sent response for {message_type}")

    async def handle_websocket(self, websocket: WebSocket):
        """Handle a UI WebSocket connection throughout its lifecycle.

        An active call is not stopped when its UI disconnects; it ends on its
        own or through another client.
        """
        await websocket.accept()
        self.registry.add_client(websocket)
        logger.info("UI WebSocket connection established")

        try:
            while True:
                data = await websocket.receive_text()
                await self.handle_message(websocket, data)
        except WebSocketDisconnect:
            logger.info("UI WebSocket disconnected")
        except Exception as e:
            logger.error(f"Error in UI WebSocket connection: {e}", exc_info=True)
        finally:
            self.registry.remove_client(websocket)
            logger.info("UI WebSocket connection closed")
