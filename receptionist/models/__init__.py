"""
Models module for call data and protocol schemas.

Key components:
- call: Transcript entries, call classification and action codes, the final
  CallRecord and the post-call AnalysisResult.
- live_schemas: Pydantic models for the Gemini Live API messages, and builders
  for the setup and realtime input client messages.
- ui_messages: Pydantic models for the UI WebSocket protocol on ``/ws``.
- call_registry: Connected UI clients and the last finished call.

Usage examples:
```python
from receptionist.models.call import CallRecord, Role, TranscriptionEntry

entry = TranscriptionEntry(role=Role.CALLER, text="হ্যালো")
record = CallRecord.from_call([entry], CallClassification.UNKNOWN, None)
await websocket.send_text(CallEndedMessage(record=record).model_dump_json())
```
"""

from receptionist.models.call import (
    ActionCode,
    AnalysisResult,
    CallClassification,
    CallPhase,
    CallRecord,
    GroundingSource,
    Role,
    TranscriptionEntry,
    TurnState,
)
from receptionist.models.call_registry import CallRegistry
from receptionist.models.live_schemas import LiveServerMessage, MediaChunk
from receptionist.models.ui_messages import (
    AnalysisResultMessage,
    BaseUIMessage,
    CallEndedMessage,
    CallStartedResponse,
    CallStartMessage,
    CallStatusRequest,
    CallStatusResponse,
    CallStopMessage,
    ErrorResponse,
    TranscriptEntryMessage,
)
