"""
Pydantic models for the UI WebSocket protocol served on ``/ws``.

A browser (or any WebSocket client) sends call control requests and receives
transcript, status and analysis updates. Every message carries a ``type`` field.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from receptionist.models.call import (
    ActionCode,
    CallClassification,
    CallRecord,
    GroundingSource,
    TranscriptionEntry,
)


class BaseUIMessage(BaseModel):
    """Base model for all UI WebSocket messages."""

    type: str = Field(..., description="Message type identifier")


# Client -> server
class CallStartMessage(BaseUIMessage):
    type: Literal["call.start"]


class CallStopMessage(BaseUIMessage):
    type: Literal["call.stop"]


class CallStatusRequest(BaseUIMessage):
    type: Literal["call.status"]


# Server -> client
class CallStartedResponse(BaseUIMessage):
    type: Literal["call.started"] = "call.started"
    sessionId: str


class CallStatusResponse(BaseUIMessage):
    """Snapshot of the active call, or of the idle state."""

    type: Literal["call.status"] = "call.status"
    isCalling: bool
    classification: CallClassification = CallClassification.UNKNOWN
    action: Optional[ActionCode] = None
    transcript: List[TranscriptionEntry] = Field(default_factory=list)


class TranscriptEntryMessage(BaseUIMessage):
    type: Literal["transcript.entry"] = "transcript.entry"
    entry: TranscriptionEntry


class CallEndedMessage(BaseUIMessage):
    type: Literal["call.ended"] = "call.ended"
    record: CallRecord


class AnalysisResultMessage(BaseUIMessage):
    type: Literal["analysis.result"] = "analysis.result"
    callId: str
    summary: str
    sources: List[GroundingSource] = Field(default_factory=list)


class ErrorResponse(BaseUIMessage):
    type: Literal["error"] = "error"
    reason: str = Field(..., description="Human-readable failure reason")
