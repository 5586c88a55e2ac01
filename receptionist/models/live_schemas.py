"""
Pydantic models for Gemini Live API message structures.

This module provides type-safe models for the messages exchanged with the
BidiGenerateContent WebSocket endpoint. Field names follow the camelCase JSON
used on the wire; unknown fields are ignored so new server features do not
break parsing.
"""

import base64
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from receptionist.config.constants import INPUT_MIME_TYPE


# Inbound (server -> client)
class InlineData(BaseModel):
    """Binary payload carried inline in a content part."""
    mimeType: str = ""
    data: str = Field(..., description="Base64-encoded payload")


class Part(BaseModel):
    """One part of a model turn (audio, text, ...)."""
    inlineData: Optional[InlineData] = None
    text: Optional[str] = None


class ModelTurn(BaseModel):
    """Content generated by the model for the current turn."""
    parts: List[Part] = Field(default_factory=list)


class Transcription(BaseModel):
    """Incremental transcription fragment."""
    text: str = ""


class ServerContent(BaseModel):
    """Incremental server update for the running turn."""
    modelTurn: Optional[ModelTurn] = None
    inputTranscription: Optional[Transcription] = None
    outputTranscription: Optional[Transcription] = None
    turnComplete: bool = False
    interrupted: bool = False


class LiveServerMessage(BaseModel):
    """Envelope of every message received from the Live API."""
    setupComplete: Optional[Dict[str, Any]] = None
    serverContent: Optional[ServerContent] = None
    goAway: Optional[Dict[str, Any]] = None

    @property
    def audio_chunks(self) -> List[str]:
        """Base64 audio payloads in this message, in part order."""
        content = self.serverContent
        if not content or not content.modelTurn:
            return []
        return [
            part.inlineData.data
            for part in content.modelTurn.parts
            if part.inlineData and part.inlineData.data
            and part.inlineData.mimeType.startswith("audio/")
        ]

    @property
    def input_text(self) -> Optional[str]:
        content = self.serverContent
        if content and content.inputTranscription:
            return content.inputTranscription.text
        return None

    @property
    def output_text(self) -> Optional[str]:
        content = self.serverContent
        if content and content.outputTranscription:
            return content.outputTranscription.text
        return None

    @property
    def turn_complete(self) -> bool:
        return bool(self.serverContent and self.serverContent.turnComplete)

    @property
    def interrupted(self) -> bool:
        return bool(self.serverContent and self.serverContent.interrupted)


# Outbound (client -> server)
class MediaChunk(BaseModel):
    """A single chunk of realtime input audio."""

    mimeType: str = INPUT_MIME_TYPE
    data: str = Field(..., description="Base64-encoded little-endian PCM16")

    @field_validator("data")
    def validate_data(cls, v):
        """Validate that the payload is non-empty base64."""
        if not v:
            raise ValueError("Audio chunk cannot be empty")
        try:
            base64.b64decode(v, validate=True)
        except Exception:
            raise ValueError("Invalid base64 encoded audio data")
        return v


def build_realtime_input(chunk: MediaChunk) -> Dict[str, Any]:
    """Wrap a media chunk in a realtimeInput client message."""
    return {"realtimeInput": {"mediaChunks": [chunk.model_dump()]}}


def build_setup_message(model: str, voice_name: str, system_instruction: str) -> Dict[str, Any]:
    """
    Build the first client message of a Live session.

    Both input and output transcription are enabled; the bridge relies on them
    for the transcript and the in-band control tags.
    """
    model_path = model if model.startswith("models/") else f"models/{model}"
    return {
        "setup": {
            "model": model_path,
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {
                        "prebuiltVoiceConfig": {"voiceName": voice_name}
                    }
                },
            },
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "inputAudioTranscription": {},
            "outputAudioTranscription": {},
        }
    }
