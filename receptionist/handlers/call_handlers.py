"""
Handles call control requests from UI clients.

This module processes the call.start, call.stop and call.status messages sent
over the ``/ws`` UI WebSocket. It starts and stops calls on the bridge and
wires the bridge's collaborator callbacks to UI broadcasts: transcript
entries, status changes, the final call record and the post-call analysis.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from fastapi import WebSocket
from pydantic import ValidationError

from receptionist.bot.call_bridge import CallSession, bridge
from receptionist.config.constants import LOGGER_NAME
from receptionist.errors import ReceptionistError
from receptionist.models.call import (
    ActionCode,
    CallClassification,
    CallRecord,
    TranscriptionEntry,
    now_ms,
)
from receptionist.models.call_registry import CallRegistry
from receptionist.models.ui_messages import (
    AnalysisResultMessage,
    CallEndedMessage,
    CallStartedResponse,
    CallStartMessage,
    CallStatusResponse,
    CallStopMessage,
    ErrorResponse,
    TranscriptEntryMessage,
)
from receptionist.services.grounding import analyzer

logger = logging.getLogger(LOGGER_NAME)

# Keep references so analysis tasks are not garbage collected mid-flight
_analysis_tasks: Set[asyncio.Task] = set()


def build_status(session: Optional[CallSession]) -> CallStatusResponse:
    """Snapshot of a call for the UI; an idle snapshot when there is none."""
    if session is None or not session.active:
        return CallStatusResponse(isCalling=False)
    return CallStatusResponse(
        isCalling=True,
        classification=session.classification,
        action=session.action,
        transcript=list(session.transcript),
    )


async def run_analysis(record: CallRecord, registry: CallRegistry) -> None:
    """Analyze a finished call and push the result to the UI clients."""
    result = await analyzer.analyze(record.transcript)
    if result is None:
        return
    registry.record_analysis(record.id, result)
    await registry.broadcast(
        AnalysisResultMessage(callId=record.id, summary=result.summary, sources=result.sources)
    )


async def handle_call_start(
    message: Dict[str, Any],
    websocket: WebSocket,
    registry: CallRegistry,
) -> CallStartedResponse | ErrorResponse:
    """
    Handle the call.start message from a UI client.

    Starts a call on the bridge. If the microphone or the Live session cannot
    be opened, an error response is returned and no call is left running.

    Args:
        message: The call.start message
        websocket: The WebSocket connection of the requesting client
        registry: Registry of UI clients and the last call

    Returns:
        A call.started response, or an error response
    """
    try:
        CallStartMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid call.start message: {e}")
        return ErrorResponse(reason="Invalid message format")

    started_at = now_ms()
    call_ids: List[str] = []

    async def on_transcript(entry: TranscriptionEntry) -> None:
        await registry.broadcast(TranscriptEntryMessage(entry=entry))

    async def on_status(session: CallSession) -> None:
        await registry.broadcast(build_status(session))

    async def on_call_end(
        transcript: List[TranscriptionEntry],
        classification: CallClassification,
        action: Optional[ActionCode],
    ) -> None:
        record = CallRecord.from_call(transcript, classification, action, start_time=started_at)
        if call_ids:
            record.id = call_ids[0]
        registry.record_call(record)
        await registry.broadcast(CallEndedMessage(record=record))
        if record.transcript:
            task = asyncio.create_task(run_analysis(record, registry))
            _analysis_tasks.add(task)
            task.add_done_callback(_analysis_tasks.discard)

    try:
        session = await bridge.start_call(
            on_call_end, on_transcript=on_transcript, on_status=on_status
        )
    except ReceptionistError as e:
        logger.error(f"Call start failed: {e}")
        return ErrorResponse(reason=str(e))

    call_ids.append(session.id)
    logger.info(f"Call {session.id} started for UI client")
    return CallStartedResponse(sessionId=session.id)


async def handle_call_stop(
    message: Dict[str, Any],
    websocket: WebSocket,
    registry: CallRegistry,
) -> CallStatusResponse:
    """
    Handle the call.stop message from a UI client.

    Stopping when no call is active is a no-op. The call.ended message is
    broadcast by the call end callback, not returned here.
    """
    try:
        CallStopMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid call.stop message: {e}")

    await bridge.stop_call()
    return build_status(None)


async def handle_call_status(
    message: Dict[str, Any],
    websocket: WebSocket,
    registry: CallRegistry,
) -> CallStatusResponse:
    """Handle the call.status message: report the active call, if any."""
    return build_status(bridge.active_session)
