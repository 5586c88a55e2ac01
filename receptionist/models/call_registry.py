"""
In-memory state shared between the UI WebSocket connections and the bridge.

The CallRegistry tracks connected UI sockets so call events can be fanned out
to all of them, and remembers the most recent finished call together with its
analysis. Nothing is persisted; a restart forgets everything.
"""

import logging
from typing import Dict, List, Optional

from fastapi import WebSocket

from receptionist.config.constants import LOGGER_NAME
from receptionist.models.call import AnalysisResult, CallRecord
from receptionist.models.ui_messages import BaseUIMessage

logger = logging.getLogger(LOGGER_NAME)


class CallRegistry:
    """
    Registry of UI clients and the last finished call.

    Only the latest call is kept; a newer record replaces the previous one and
    drops its analysis.
    """

    def __init__(self):
        self.clients: List[WebSocket] = []
        self.last_call: Optional[CallRecord] = None
        self.analyses: Dict[str, AnalysisResult] = {}

    def add_client(self, websocket: WebSocket):
        """Register a UI connection for broadcasts."""
        if websocket not in self.clients:
            self.clients.append(websocket)

    def remove_client(self, websocket: WebSocket):
        """Forget a UI connection; unknown sockets are ignored."""
        if websocket in self.clients:
            self.clients.remove(websocket)

    def record_call(self, record: CallRecord):
        self.last_call = record
        self.analyses = {}

    def record_analysis(self, call_id: str, result: AnalysisResult):
        if self.last_call is None or self.last_call.id != call_id:
            logger.info(f"Discarding analysis for superseded call: {call_id}")
            return
        self.analyses[call_id] = result

    def get_analysis(self, call_id: str) -> Optional[AnalysisResult]:
        return self.analyses.get(call_id)

    async def broadcast(self, message: BaseUIMessage):
        """
        Send a message to every connected UI client.

        Clients whose socket fails are dropped from the registry.
        """
        payload = message.model_dump_json()
        for websocket in list(self.clients):
            try:
                await websocket.send_text(payload)
            except Exception as e:
                logger.warning(f"Dropping UI client after send failure: {e}")
                self.remove_client(websocket)
