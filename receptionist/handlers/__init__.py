"""
Handlers module for the UI WebSocket of the AI receptionist.

Key components:
- call_handlers: Processes call.start, call.stop and call.status requests,
  starting and stopping calls on the bridge and broadcasting transcript,
  status, call end and analysis updates to connected UI clients.

Every handler takes the raw message dict, the requesting WebSocket and the
CallRegistry, and returns the response model to send back (or None).

Usage examples:
```python
from receptionist.handlers.call_handlers import handle_call_start
from receptionist.models.call_registry import CallRegistry

registry = CallRegistry()
response = await handle_call_start({"type": "call.start"}, websocket, registry)
await websocket.send_text(response.model_dump_json())
```
"""

# Handlers module initialization
