import asyncio
import json
import logging
from typing import Any, NamedTuple, Optional, Union

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from receptionist.config.constants import (
    CONNECTION_TIMEOUT,
    DEFAULT_LIVE_MODEL,
    DEFAULT_VOICE_NAME,
    LIVE_API_URL,
    LOGGER_NAME,
    SETUP_TIMEOUT,
)
from receptionist.config.prompts import RECEPTIONIST_INSTRUCTION
from receptionist.errors import SessionOpenError, SessionProtocolError
from receptionist.models.live_schemas import (
    LiveServerMessage,
    MediaChunk,
    build_realtime_input,
    build_setup_message,
)

logger = logging.getLogger(LOGGER_NAME)

# WebSocket configuration
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_PING_INTERVAL = 5  # seconds between pings

# Session event kinds, delivered in arrival order on one queue
EVENT_OPEN = "open"
EVENT_MESSAGE = "message"
EVENT_CLOSE = "close"
EVENT_ERROR = "error"


class SessionEvent(NamedTuple):
    kind: str
    payload: Any = None


class LiveSessionClient:
    """
    Duplex streaming session with the Gemini Live API.

    Everything the server sends is turned into SessionEvent values on a single
    asyncio.Queue: one ``open`` once setup completes, one ``message`` per server
    message, and finally one ``close`` or ``error``. There is no automatic
    reconnection; a failed session is over.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_LIVE_MODEL,
        voice_name: str = DEFAULT_VOICE_NAME,
        system_instruction: str = RECEPTIONIST_INSTRUCTION,
        events: Optional[asyncio.Queue] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.voice_name = voice_name
        self.system_instruction = system_instruction
        self.events: asyncio.Queue = events if events is not None else asyncio.Queue()
        self.ws = None
        self._recv_task: Optional[asyncio.Task] = None
        self._connection_active = False
        self._is_closing = False
        logger.info(f"LiveSessionClient initialized with model: {model}")

    @property
    def connected(self) -> bool:
        return self._connection_active

    async def connect(self) -> None:
        """
        Open the WebSocket, send the setup message and wait for setupComplete.

        Raises:
            SessionOpenError: If the connection or the setup handshake fails
        """
        if self._is_closing:
            raise SessionOpenError("Client is closing")

        url = f"{LIVE_API_URL}?key={self.api_key}"
        logger.info(f"Connecting to Gemini Live API with model: {self.model}")
        try:
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    url,
                    max_size=WS_MAX_SIZE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=10,
                    compression=None,
                ),
                timeout=CONNECTION_TIMEOUT,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Timeout while connecting to Gemini Live API (after {CONNECTION_TIMEOUT}s)")
            raise SessionOpenError("Timed out connecting to Gemini Live API") from e
        except Exception as e:
            logger.error(f"Failed to connect to Gemini Live API: {e}")
            raise SessionOpenError(f"Failed to connect to Gemini Live API: {e}") from e

        try:
            setup = build_setup_message(self.model, self.voice_name, self.system_instruction)
            await self.ws.send(json.dumps(setup))
            await asyncio.wait_for(self._wait_for_setup_complete(), timeout=SETUP_TIMEOUT)
        except Exception as e:
            logger.error(f"Gemini Live setup failed: {e}")
            await self._close_ws()
            if isinstance(e, asyncio.TimeoutError):
                raise SessionOpenError("Timed out waiting for setupComplete") from e
            raise SessionOpenError(f"Gemini Live setup failed: {e}") from e

        self._connection_active = True
        self._recv_task = asyncio.create_task(self._recv_loop())
        await self.events.put(SessionEvent(EVENT_OPEN))
        logger.info("Gemini Live session open")

    async def _wait_for_setup_complete(self) -> None:
        while True:
            message = self._parse(await self.ws.recv())
            if message is not None and message.setupComplete is not None:
                return
            logger.debug("Ignoring message received before setupComplete")

    @staticmethod
    def _parse(raw: Union[str, bytes]) -> Optional[LiveServerMessage]:
        """Parse a server frame; malformed frames are logged and skipped."""
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return LiveServerMessage.model_validate(json.loads(raw))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Skipping malformed Live API message: {e}")
            return None

    async def _recv_loop(self) -> None:
        """Forward server messages to the event queue until the connection ends."""
        final_event = SessionEvent(EVENT_CLOSE)
        try:
            async for raw in self.ws:
                message = self._parse(raw)
                if message is None:
                    continue
                if message.goAway is not None:
                    logger.warning(f"Gemini Live server is going away: {message.goAway}")
                await self.events.put(SessionEvent(EVENT_MESSAGE, message))
            logger.info("Gemini Live connection closed normally")
        except ConnectionClosedOK:
            logger.info("Gemini Live connection closed normally")
        except ConnectionClosedError as e:
            logger.warning(f"Gemini Live connection closed unexpectedly: {e}")
            final_event = SessionEvent(EVENT_ERROR, SessionProtocolError(str(e)))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in Gemini Live receive loop: {e}", exc_info=True)
            final_event = SessionEvent(EVENT_ERROR, SessionProtocolError(str(e)))
        finally:
            self._connection_active = False

        if not self._is_closing:
            await self.events.put(final_event)

    async def send_realtime_input(self, chunk: MediaChunk) -> bool:
        """
        Send one audio chunk. Does not wait for any acknowledgement.

        Returns:
            bool: True if the chunk was handed to the connection
        """
        if not self._connection_active or self.ws is None:
            logger.debug("Cannot send audio - connection not active")
            return False
        try:
            await self.ws.send(json.dumps(build_realtime_input(chunk)))
            return True
        except ConnectionClosed as e:
            logger.warning(f"Connection closed while sending audio: {e}")
            self._connection_active = False
            return False

    async def close(self) -> None:
        """Close the session and stop the receive loop. Safe to call more than once."""
        if self._is_closing:
            return
        logger.info("Closing Gemini Live session")
        self._is_closing = True
        self._connection_active = False

        task, self._recv_task = self._recv_task, None
        if task and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._close_ws()
        logger.info("Gemini Live session closed")

    async def _close_ws(self) -> None:
        ws, self.ws = self.ws, None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"Error closing Live API WebSocket: {e}")
