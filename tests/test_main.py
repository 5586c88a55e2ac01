import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, MagicMock

from receptionist.main import app, websocket_manager
from receptionist.models.call import AnalysisResult, CallClassification, CallRecord

client = TestClient(app)


@pytest.fixture(autouse=True)
def reset_registry():
    websocket_manager.registry.last_call = None
    websocket_manager.registry.analyses = {}
    yield
    websocket_manager.registry.last_call = None
    websocket_manager.registry.analyses = {}


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert "gemini_api_key_configured" in response_json
    assert isinstance(response_json["gemini_api_key_configured"], bool)
    assert response_json["call_active"] is False

def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "AI Call Receptionist"
    assert "description" in response_json
    assert response_json["version"] == "1.0.0"
    assert "endpoints" in response_json
    assert "/ws" in response_json["endpoints"]
    assert "/health" in response_json["endpoints"]
    assert "/calls/last" in response_json["endpoints"]

def test_last_call_not_found():
    """Test /calls/last before any call has finished"""
    response = client.get("/calls/last")
    assert response.status_code == 404

def test_last_call_with_analysis():
    """Test /calls/last returns the record and its analysis"""
    record = CallRecord.from_call([], CallClassification.SPAM, None)
    websocket_manager.registry.record_call(record)
    websocket_manager.registry.record_analysis(record.id, AnalysisResult(summary="স্প্যাম কল"))

    response = client.get("/calls/last")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["record"]["id"] == record.id
    assert response_json["record"]["classification"] == "SPAM"
    assert response_json["analysis"]["summary"] == "স্প্যাম কল"

def test_last_call_without_analysis():
    record = CallRecord.from_call([], CallClassification.UNKNOWN, None)
    websocket_manager.registry.record_call(record)

    response = client.get("/calls/last")
    assert response.json()["analysis"] is None

def test_websocket_endpoint_initialization():
    """Test that websocket_manager is properly initialized"""
    assert websocket_manager is not None
    assert websocket_manager.registry is not None
    assert "call.start" in websocket_manager.handlers
    assert "call.stop" in websocket_manager.handlers
    assert "call.status" in websocket_manager.handlers

def test_websocket_unknown_message_roundtrip():
    """Test the /ws endpoint answers an unknown message type with an error"""
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text('{"type": "session.initiate"}')
        assert websocket.receive_json() == {
            "type": "error",
            "reason": "Unknown message type: session.initiate",
        }

@pytest.mark.asyncio
async def test_websocket_endpoint():
    """Test that websocket endpoint calls the handle_websocket method"""
    with patch('receptionist.websocket_manager.WebSocketManager.handle_websocket') as mock_handle:
        mock_handle.return_value = None
        mock_websocket = MagicMock()

        # Find the websocket endpoint by path
        websocket_route = next(route for route in app.routes if route.path == "/ws")
        websocket_endpoint = websocket_route.endpoint
        await websocket_endpoint(mock_websocket)

        # Verify the websocket is handled
        mock_handle.assert_called_once_with(mock_websocket)

@pytest.mark.asyncio
async def test_app_startup_configuration():
    """Test the app configuration on startup"""
    assert app.title == "AI Call Receptionist"
    assert "Gemini Live" in app.description
    assert app.version == "1.0.0"

    route_paths = [route.path for route in app.routes]
    assert "/ws" in route_paths
    assert "/health" in route_paths
    assert "/calls/last" in route_paths
    assert "/" in route_paths
