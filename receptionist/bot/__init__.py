"""
Bot module bridging the local audio devices with the Gemini Live API.

Key components:
- LiveSessionClient: Duplex WebSocket session with the Live API. Every server
  message, plus the final close or error, is delivered as a SessionEvent on a
  single ordered queue.
- CallSessionBridge: Owns the active call. Acquires the microphone and speaker,
  opens the Live session, dispatches session events, tracks the transcript and
  control tags, and tears everything down exactly once.
- AudioIngressPipeline / PlaybackScheduler: Microphone frames out, gapless
  model audio in.
- TranscriptParser: Per-turn transcript buffers and the in-band control tags.

Usage examples:
```python
from receptionist.bot import bridge

async def on_call_end(transcript, classification, action):
    print(classification, action, len(transcript))

session = await bridge.start_call(on_call_end)
...
await bridge.stop_call()
```
"""

from receptionist.bot.call_bridge import CallSession, CallSessionBridge, bridge
from receptionist.bot.live_api import LiveSessionClient

__all__ = ["LiveSessionClient", "CallSession", "CallSessionBridge", "bridge"]
