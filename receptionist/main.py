"""
FastAPI server for the AI receptionist call simulator.

This module initializes the FastAPI application a browser front-end talks to.
The server owns the microphone and speaker of the machine it runs on; the UI
starts and stops calls over the ``/ws`` WebSocket and receives the live
transcript, the call classification and the post-call analysis.
"""

import os
from pathlib import Path

import dotenv
from fastapi import FastAPI, HTTPException, WebSocket

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

from receptionist.config.logging_config import configure_logging  # noqa: E402
from receptionist.bot import call_bridge  # noqa: E402
from receptionist.websocket_manager import WebSocketManager  # noqa: E402

# Configure logging
logger = configure_logging()

# Get configuration from environment variables
PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")

# Create FastAPI application
app = FastAPI(
    title="AI Call Receptionist",
    description="Simulated phone receptionist on top of the Gemini Live API",
    version="1.0.0",
)

# Create WebSocket manager
websocket_manager = WebSocketManager()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for the receptionist UI.

    Accepts call.start, call.stop and call.status requests and pushes
    transcript.entry, call.status, call.ended and analysis.result updates.
    """
    await websocket_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Whether the service is up, the API key is configured and a call is active.
    """
    return {
        "status": "healthy",
        "gemini_api_key_configured": bool(call_bridge.GEMINI_API_KEY),
        "call_active": call_bridge.bridge.is_calling,
        "ui_clients": len(websocket_manager.registry.clients),
    }


@app.get("/calls/last")
async def last_call():
    """Return the most recent finished call and its analysis, if ready."""
    record = websocket_manager.registry.last_call
    if record is None:
        raise HTTPException(status_code=404, detail="No call has finished yet")
    analysis = websocket_manager.registry.get_analysis(record.id)
    return {
        "record": record.model_dump(mode="json"),
        "analysis": analysis.model_dump(mode="json") if analysis else None,
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "name": "AI Call Receptionist",
        "description": "Simulated phone receptionist on top of the Gemini Live API",
        "version": "1.0.0",
        "endpoints": {
            "/ws": "WebSocket endpoint for the receptionist UI",
            "/health": "Health check endpoint",
            "/calls/last": "Last finished call with its analysis",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT, http="h11")
