from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from core.metrics import FixedMetrics
from server.app import create_app
from server.sessions import demo_user


@pytest.fixture
def client(temp_config):
    app = create_app(temp_config, metrics=FixedMetrics())
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["agents"] == 11
    assert data["llm"] == {"status": "disabled"}


def test_list_agents(client):
    names = [a["name"] for a in client.get("/agents").json()["agents"]]
    assert "authwise" in names
    assert len(names) == 11


def test_session_cookie_issued_once(client):
    client.get("/authwise")
    token = client.cookies.get("agentdesk_session")
    assert token
    client.get("/authwise")
    assert client.cookies.get("agentdesk_session") == token


def test_demo_user():
    assert demo_user("abc").id == "demo_abc"


def test_chat_authwise_vulnerability(client):
    response = client.post("/authwise/chat", json={"message": "scan for SQL injection vulnerabilities"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["intent"] == "vulnerability"
    assert data["response"].startswith("🔍 **AuthWise Vulnerability Assessment Engine**")
    assert data["recommendations"]
    assert data["processing_time"] == 2.1
    assert data["ai_assisted"] is False
    assert data["agent_info"]["name"] == "AuthWise"


@pytest.mark.parametrize("payload", [{"message": ""}, {"message": "   "}, {}])
def test_chat_blank_message(client, payload):
    response = client.post("/authwise/chat", json=payload)
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Message is required"}
    assert client.get("/authwise/history").json()["history"] == []


def test_chat_unknown_agent(client):
    response = client.post("/nobody/chat", json={"message": "hi"})
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Unknown agent: nobody"}


def test_chat_internal_error(client):
    engine = client.app.state.engines["authwise"]
    engine.registry.dispatch = MagicMock(side_effect=RuntimeError("boom"))
    response = client.post("/authwise/chat", json={"message": "hello"})
    assert response.status_code == 500
    assert response.json()["success"] is False
    assert "boom" not in response.json()["message"]


def test_history_keeps_last_five(client):
    for i in range(1, 7):
        client.post("/authwise/chat", json={"message": f"login issue {i}"})
    history = client.get("/authwise/history", params={"limit": 10}).json()["history"]
    assert [h["message"] for h in history] == [f"login issue {i}" for i in range(2, 7)]


def test_history_limit_zero(client):
    client.post("/authwise/chat", json={"message": "scan"})
    assert client.get("/authwise/history", params={"limit": 0}).json()["history"] == []


def test_analytics_and_index(client):
    client.post("/carebot/chat", json={"message": "my head hurts"})
    client.post("/carebot/chat", json={"message": "back pain"})
    client.post("/carebot/chat", json={"message": "diet tips"})
    analytics = client.get("/carebot/analytics").json()["analytics"]
    assert analytics["dominant_intent_today"] == "symptoms"
    assert analytics["total_interactions"] == 3

    index = client.get("/carebot").json()
    assert index["stats"]["total_conversations"] == 3
    assert index["session"]["intent_distribution"] == {"symptoms": 2, "wellness": 1}


def test_status(client):
    data = client.get("/netscope/status").json()
    assert data["name"] == "NetScope"
    assert data["status"] == "active"
    assert "threat_detection" in data["capabilities"]


def test_clear(client):
    client.post("/authwise/chat", json={"message": "scan"})
    assert client.post("/authwise/clear").json()["success"] is True
    assert client.get("/authwise/history").json()["history"] == []


def test_sessions_are_separate(temp_config):
    app = create_app(temp_config, metrics=FixedMetrics())
    with TestClient(app) as first:
        second = TestClient(app)
        first.post("/authwise/chat", json={"message": "scan"})
        assert second.get("/authwise/history").json()["history"] == []


def test_memora_store_and_search(client):
    response = client.post("/memora/store_memory", json={"content": "Remember my meeting notes from today"})
    assert response.status_code == 200
    stored = response.json()
    assert stored["memory"]["content"] == "my meeting notes from today"

    results = client.get("/memora/search_memories", params={"query": "meeting"}).json()
    assert results["total_found"] == 1
    assert results["results"][0]["id"] == stored["memory_id"]


def test_memora_store_requires_content(client):
    response = client.post("/memora/store_memory", json={"content": "  "})
    assert response.status_code == 400
    assert response.json()["message"] == "Content is required"


def test_memora_store_invalid_type(client):
    response = client.post("/memora/store_memory", json={"content": "x y z", "memory_type": "dream"})
    assert response.status_code == 400


def test_memora_memories_are_per_user(temp_config):
    app = create_app(temp_config, metrics=FixedMetrics())
    with TestClient(app) as first:
        second = TestClient(app)
        first.post("/memora/store_memory", json={"content": "secret project codename"})
        assert second.get("/memora/search_memories", params={"query": "codename"}).json()["total_found"] == 0


def test_memora_recall_and_stats(client):
    client.post("/memora/store_memory", json={"content": "call the plumber tomorrow", "memory_type": "reminder"})
    recall = client.get("/memora/recall", params={"query": "plumber"}).json()
    assert recall["total_found"] == 1
    stats = client.get("/memora/stats").json()["stats"]
    assert stats["memory_types"] == {"reminder": 1}
    assert client.get("/memora").json()["knowledge_stats"]["total_memories"] == 1


def test_memora_recall_requires_query(client):
    assert client.get("/memora/recall").status_code == 400


def test_memora_memory_types(client):
    data = client.get("/memora/memory_types").json()
    assert "goal" in data["memory_types"]
    assert "critical" in data["priority_levels"]


def test_memora_export(client):
    client.post("/memora/store_memory", json={"content": "export me please"})
    data = client.get("/memora/export", params={"format": "text"}).json()
    assert "export me please" in data["export_data"]
    assert client.get("/memora/export", params={"format": "xml"}).status_code == 400


def test_memora_delete(client):
    memory_id = client.post("/memora/store_memory", json={"content": "short lived"}).json()["memory_id"]
    assert client.delete(f"/memora/memories/{memory_id}").json()["success"] is True
    assert client.delete(f"/memora/memories/{memory_id}").status_code == 404


def test_memora_upload_text_file(client):
    response = client.post(
        "/memora/upload_file",
        files={"file": ("notes.txt", b"Quarterly budget review notes", "text/plain")},
        data={"tags": "finance,q3"},
    )
    data = response.json()
    assert data["success"] is True
    assert data["extracted_content"] == "Quarterly budget review notes"
    assert "budget" in data["searchable_keywords"]
    found = client.get("/memora/search_memories", params={"query": "budget", "tags": "finance"}).json()
    assert found["total_found"] == 1


def test_memora_upload_binary_file(client):
    response = client.post(
        "/memora/upload_file",
        files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert response.json()["extracted_content"] == "[application/pdf file: scan.pdf, 8 bytes]"


def test_memora_upload_large_file_reads_bounded_prefix(client):
    response = client.post(
        "/memora/upload_file",
        files={"file": ("big.txt", b"a" * 10000, "text/plain")},
    )
    data = response.json()
    assert data["file_size"] == 10000
    assert len(data["extracted_content"]) == 2000


def test_memora_upload_large_binary_reports_full_size(client):
    response = client.post(
        "/memora/upload_file",
        files={"file": ("dump.bin", b"\x00" * 10000, "application/octet-stream")},
    )
    assert response.json()["extracted_content"] == "[application/octet-stream file: dump.bin, 10000 bytes]"


def test_memora_disabled(temp_config):
    temp_config.memory.enabled = False
    with TestClient(create_app(temp_config, metrics=FixedMetrics())) as client:
        response = client.get("/memora/stats")
        assert response.status_code == 400
        assert client.get("/memora").status_code == 200


def test_mood_journal(client):
    client.post("/emotisense/mood_journal", json={"mood_rating": 4, "emotions": ["anxious"]})
    response = client.post("/emotisense/mood_journal", json={"mood_rating": 7, "emotions": ["calm"]})
    data = response.json()
    assert data["total_entries"] == 2
    assert data["insights"][0] == "Your mood has been trending upward!"

    journal = client.get("/emotisense/mood_journal").json()
    assert [e["mood_rating"] for e in journal["entries"]] == [4, 7]
    assert journal["patterns"] == {}

    index = client.get("/emotisense").json()
    assert index["mood_stats"]["mood_changes"] == 2
    assert index["mood_stats"]["dominant_mood"] == "anxious"


def test_mood_journal_is_bounded(client):
    for rating in range(1, 8):
        client.post("/emotisense/mood_journal", json={"mood_rating": rating})
    entries = client.get("/emotisense/mood_journal").json()["entries"]
    assert [e["mood_rating"] for e in entries] == [3, 4, 5, 6, 7]


@pytest.mark.parametrize("payload", [{}, {"mood_rating": 0}, {"mood_rating": 11}])
def test_mood_journal_rejects_bad_rating(client, payload):
    response = client.post("/emotisense/mood_journal", json=payload)
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.parametrize("payload", [{"message": 123}, {"message": ["scan"]}])
def test_chat_malformed_body_is_400(client, payload):
    response = client.post("/authwise/chat", json=payload)
    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["message"].startswith("Invalid request: message:")


def test_chat_invalid_json_is_400(client):
    response = client.post(
        "/authwise/chat", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_mood_entry_wrong_type_is_400(client):
    response = client.post("/emotisense/mood_journal", json={"mood_rating": "great"})
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid request: mood_rating:")


def test_idle_sessions_are_swept(temp_config):
    temp_config.session.idle_minutes = 0
    temp_config.session.sweep_interval = 0
    with TestClient(create_app(temp_config, metrics=FixedMetrics())) as client:
        client.post("/authwise/chat", json={"message": "scan"})
        client.post("/emotisense/mood_journal", json={"mood_rating": 6})
        assert client.get("/authwise/history").json()["count"] == 0
        assert client.get("/emotisense/mood_journal").json()["entries"] == []
        assert len(client.app.state.engines["authwise"].sessions) == 0


def test_active_sessions_survive_sweep(temp_config):
    temp_config.session.sweep_interval = 0
    with TestClient(create_app(temp_config, metrics=FixedMetrics())) as client:
        client.post("/authwise/chat", json={"message": "scan"})
        assert client.get("/authwise/history").json()["count"] == 1
