import pytest
from fastapi.testclient import TestClient

from autoparts_assistant.app import build_app
from autoparts_assistant.inventory import LocalInventory
from autoparts_assistant.orchestrator import WELCOME_MESSAGE
from autoparts_assistant.reasoning import ReasoningClient


@pytest.fixture
def api(settings, products):
    return build_app(settings, ReasoningClient(settings), LocalInventory(products))


@pytest.fixture
def client(api):
    return TestClient(api)


def test_chat_search_returns_products(client):
    response = client.post("/api/chat", json={"session_id": "s1", "message": "filtro"})
    assert response.status_code == 200
    body = response.json()
    assert body["session_id"] == "s1"
    assert body["intent"] == "SEARCH"
    assert [p["id"] for p in body["products"]] == ["REP-005"]
    assert body["products"][0]["compatibleModels"] == ["Fiat", "Palio"]
    assert body["reply"] == "Encontré 1 resultados para tu búsqueda."
    assert body["action_link"] is None


def test_chat_handoff_returns_action(client):
    response = client.post("/api/chat", json={"message": "quiero hablar con un asesor"})
    body = response.json()
    assert body["intent"] == "AGENT"
    assert body["action_label"] == "Hablar con un asesor"
    assert body["action_link"].startswith("https://wa.me/5491122334455?text=")
    assert body["session_id"]


def test_blank_message_is_rejected(client):
    response = client.post("/api/chat", json={"message": "  "})
    assert response.status_code == 400


def test_busy_session_returns_conflict(api, client):
    client.post("/api/chat", json={"session_id": "busy", "message": "hola"})
    conversation = api.state.sessions.get("busy")
    conversation._lock.acquire()
    try:
        response = client.post("/api/chat", json={"session_id": "busy", "message": "freno"})
    finally:
        conversation._lock.release()
    assert response.status_code == 409


def test_session_transcript_and_listing(client):
    client.post("/api/chat", json={"session_id": "s2", "message": "pastillas de freno"})

    listing = client.get("/api/sessions").json()
    assert listing[0]["session_id"] == "s2"
    assert listing[0]["title"] == "pastillas de freno"

    transcript = client.get("/api/sessions/s2").json()
    texts = [m["text"] for m in transcript["messages"]]
    assert texts[0] == WELCOME_MESSAGE
    assert texts[1] == "pastillas de freno"
    assert len(texts) == 3
    assert [p["id"] for p in transcript["products"]] == ["REP-004"]


def test_unknown_session_is_404(client):
    assert client.get("/api/sessions/nope").status_code == 404


def test_shutdown_closes_inventory(settings, products):
    closed = []

    class TrackedInventory(LocalInventory):
        def close(self):
            closed.append(True)

    api = build_app(settings, ReasoningClient(settings), TrackedInventory(products))
    with TestClient(api) as client:
        assert client.post("/api/chat", json={"message": "filtro"}).status_code == 200
        assert closed == []
    assert closed == [True]
