"""
Data models describing a single simulated call.

The bridge produces TranscriptionEntry values at turn boundaries and hands a
CallRecord to the UI when the call ends. Entries are immutable once created.
"""

import time
import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Role(str, Enum):
    """Speaker of a transcript entry."""
    CALLER = "user"
    ASSISTANT = "model"


class CallClassification(str, Enum):
    """How the receptionist classified the caller."""
    SPAM = "SPAM"
    IMPORTANT = "IMPORTANT"
    UNKNOWN = "UNKNOWN"


class ActionCode(str, Enum):
    """Termination action requested by the model."""
    TRANSFER = "TRANSFER"
    HANGUP = "HANGUP"


class TurnState(str, Enum):
    """Progress of the current dialogue turn."""
    IDLE = "IDLE"
    TURN_IN_PROGRESS = "TURN_IN_PROGRESS"


class CallPhase(str, Enum):
    """Call-level state, orthogonal to the turn state."""
    UNCLASSIFIED = "UNCLASSIFIED"
    CLASSIFIED = "CLASSIFIED"
    ACTION_PENDING = "ACTION_PENDING"
    TERMINATED = "TERMINATED"


class TranscriptionEntry(BaseModel):
    """One completed utterance of the call history."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str
    timestamp: int = Field(default_factory=now_ms, description="Epoch milliseconds")


class GroundingSource(BaseModel):
    """A web page cited by the search-grounded analysis."""
    title: str = ""
    uri: str


class AnalysisResult(BaseModel):
    """Output of the post-call analysis."""
    summary: str
    sources: List[GroundingSource] = Field(default_factory=list)


class CallRecord(BaseModel):
    """Final state of a call, handed to the UI once the call has ended."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    purpose: Optional[str] = None
    classification: CallClassification = CallClassification.UNKNOWN
    action: Optional[ActionCode] = None
    transcript: List[TranscriptionEntry] = Field(default_factory=list)
    start_time: int = Field(default_factory=now_ms)
    end_time: Optional[int] = None

    @classmethod
    def from_call(
        cls,
        transcript: List[TranscriptionEntry],
        classification: CallClassification,
        action: Optional[ActionCode],
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> "CallRecord":
        """Build a record, taking the first caller utterance as the call purpose."""
        purpose = next(
            (entry.text for entry in transcript if entry.role == Role.CALLER), None
        )
        return cls(
            purpose=purpose,
            classification=classification,
            action=action,
            transcript=list(transcript),
            start_time=start_time if start_time is not None else now_ms(),
            end_time=end_time if end_time is not None else now_ms(),
        )
