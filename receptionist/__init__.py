"""
AI Call Receptionist - local phone receptionist simulator on the Gemini Live API

This application simulates an AI receptionist answering a phone call. The
microphone of the machine running the server stands in for the caller's line:
captured audio is streamed to the Gemini Live API, the model's spoken replies
are played back on the speaker, and the live transcript is shown to a browser
UI connected over a WebSocket.

The model screens the caller and signals its decisions in-band, as bracketed
tags inside its output transcription ([CALL_TYPE: SPAM], [ACTION: TRANSFER],
...). The bridge picks these tags up, classifies the call and ends it after a
short grace delay so the model can finish its last sentence.

Architecture Overview:
- FastAPI server exposing the UI WebSocket and a few HTTP endpoints
- Gemini Live API session for speech-to-speech conversation
- Microphone ingress and gapless speaker playback via PyAudio
- Search-grounded post-call analysis via the generateContent API

Key Components:
- bot: Call session bridge, Live API client, audio ingress and playback
- config: Application-wide constants, prompts and logging setup
- handlers: Call control handlers for the UI WebSocket protocol
- models: Call data models and protocol schemas
- services: Post-call analysis with Google Search grounding
- websocket_manager: Central handler for UI WebSocket connections

Getting Started:
1. Set up environment variables:
   - GEMINI_API_KEY: Your Gemini API key (API_KEY is accepted as a fallback)
   - PORT: Port to run the server on (default 8000)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Connect a UI to ws://localhost:8000/ws and send {"type": "call.start"}.
"""

# This file is intentionally left empty
# It makes the receptionist directory a proper Python package
