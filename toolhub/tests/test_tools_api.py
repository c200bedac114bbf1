from toolhub.app.db.models import ToolKind, ToolStatus

from conftest import MCP_BASE_URL


def remote_payload(name, **extra):
    payload = {
        "name": name,
        "type": "REMOTE",
        "config": {"transport": {"type": "http", "url": MCP_BASE_URL, "headers": {"X-Token": "abc"}}},
    }
    payload.update(extra)
    return payload


def test_save_and_list_tools(client):
    response = client.post("/api/mcp", json={"name": "echo", "description": "Echo text"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["data"]["type"] == ToolKind.LOCAL
    assert data["data"]["status"] == ToolStatus.ENABLED

    client.post("/api/mcp", json=remote_payload("remote_echo"))

    listing = client.get("/api/mcp/servers").json()
    assert listing["total"] == 2
    assert {t["name"] for t in listing["data"]} == {"echo", "remote_echo"}

    remote_only = client.get("/api/mcp/servers", params={"type": "REMOTE"}).json()
    assert [t["name"] for t in remote_only["data"]] == ["remote_echo"]

    search = client.get("/api/mcp/servers", params={"keyword": "ech"}).json()
    assert search["total"] == 2


def test_duplicate_name_conflicts(client):
    client.post("/api/mcp", json={"name": "echo"})
    response = client.post("/api/mcp", json={"name": "echo"})
    assert response.status_code == 409
    assert response.json()["code"] == "TOOL_NAME_TAKEN"


def test_invalid_type_and_status(client):
    assert client.post("/api/mcp", json={"name": "x", "type": "PLUGIN"}).status_code == 400
    tool_id = client.post("/api/mcp", json={"name": "x"}).json()["data"]["id"]
    response = client.put(f"/api/mcp/{tool_id}/status", params={"status": "PAUSED"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATUS"


def test_missing_body_field_is_validation_error(client):
    response = client.post("/api/mcp", json={"description": "no name"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_get_update_and_delete(client, runtime):
    tool_id = client.post("/api/mcp", json=remote_payload("remote_echo")).json()["data"]["id"]
    assert runtime.endpoints.is_registered(tool_id)

    assert client.get(f"/api/mcp/{tool_id}").json()["data"]["name"] == "remote_echo"
    assert client.get("/api/mcp/9999").status_code == 404

    updated = client.put(f"/api/mcp/{tool_id}", json={"description": "changed"}).json()
    assert updated["data"]["description"] == "changed"
    assert client.put("/api/mcp/9999", json={"description": "x"}).status_code == 404

    assert client.delete(f"/api/mcp/{tool_id}").json()["success"] is True
    assert not runtime.endpoints.is_registered(tool_id)
    assert client.delete(f"/api/mcp/{tool_id}").json()["success"] is False


def test_batch_delete(client, runtime):
    ids = [client.post("/api/mcp", json=remote_payload(f"r{i}")).json()["data"]["id"] for i in range(3)]

    response = client.delete("/api/mcp/batch", params={"ids": f"{ids[0]},{ids[1]}"})

    assert response.json() == {"success": True, "message": "Deleted", "count": 2}
    assert len(runtime.endpoints) == 1
    assert client.get("/api/mcp/servers").json()["total"] == 1
    assert client.delete("/api/mcp/batch", params={"ids": "a,b"}).status_code == 400


def test_status_toggle_controls_endpoint(client, runtime):
    tool_id = client.post("/api/mcp", json=remote_payload("remote_echo")).json()["data"]["id"]

    assert client.put(f"/api/mcp/{tool_id}/status", params={"status": "DISABLED"}).json()["success"] is True
    assert not runtime.endpoints.is_registered(tool_id)
    disabled = client.post("/api/mcp/tools/invoke/remote_echo", json={"text": "x"}).json()
    assert disabled["errorType"] == "ToolDisabled"

    client.put(f"/api/mcp/{tool_id}/status", params={"status": "ENABLED"})
    assert runtime.endpoints.is_registered(tool_id)
    assert client.put("/api/mcp/9999/status", params={"status": "ENABLED"}).json()["success"] is False


def test_unregistrable_config_update_takes_tool_offline(client, runtime, mcp_server):
    tool_id = client.post("/api/mcp", json=remote_payload("remote_echo")).json()["data"]["id"]
    assert runtime.endpoints.is_registered(tool_id)

    response = client.put(f"/api/mcp/{tool_id}", json={"config": {"transport": {"type": "http"}}})

    assert response.status_code == 200
    assert response.json()["data"]["config"] == {"transport": {"type": "http"}}
    assert runtime.endpoints.get(tool_id) is None
    data = client.post("/api/mcp/tools/invoke/remote_echo", json={"text": "x"}).json()
    assert data["success"] is False
    assert mcp_server.requests == []


def test_invoke_builtin_local_tool(client):
    client.post("/api/mcp", json={"name": "add_numbers"})

    response = client.post("/api/mcp/tools/invoke/add_numbers", json={"a": "2", "b": 3.5})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["response"] == 5.5
    assert data["responseJson"] == "5.5"
    assert data["request"] == {"a": "2", "b": 3.5}


def test_invoke_remote_tool(client, mcp_server):
    client.post("/api/mcp", json=remote_payload("remote_echo"))

    data = client.post("/api/mcp/tools/invoke/remote_echo", json={"text": "ping"}).json()

    assert data["success"] is True
    assert data["response"] == "ping"
    request, body = mcp_server.requests[-1]
    assert request.headers["X-Token"] == "abc"
    assert body["params"] == {"name": "remote_echo", "arguments": {"text": "ping"}}


def test_test_endpoint_by_id(client):
    tool_id = client.post("/api/mcp", json={"name": "word_count"}).json()["data"]["id"]

    data = client.post(f"/api/mcp/tools/test/{tool_id}", json={"text": "a b a", "unique": "true"}).json()
    assert data["success"] is True
    assert data["toolId"] == tool_id
    assert data["response"] == 2

    missing = client.post("/api/mcp/tools/test/9999", json={})
    assert missing.status_code == 404
    assert missing.json()["errorType"] == "ToolNotFound"


def test_invoke_without_body(client):
    client.post("/api/mcp", json={"name": "current_time"})
    data = client.post("/api/mcp/tools/invoke/current_time").json()
    assert data["success"] is True
    assert data["request"] == {}


def test_invocation_failure_envelope(client):
    client.post("/api/mcp", json={"name": "echo"})
    data = client.post("/api/mcp/tools/invoke/echo", json={}).json()
    assert data["success"] is False
    assert data["errorType"] == "MissingRequiredParameter"
    assert "text" in data["error"]


def test_tool_info(client):
    local_id = client.post("/api/mcp", json={"name": "echo"}).json()["data"]["id"]
    ghost_id = client.post("/api/mcp", json={"name": "ghost"}).json()["data"]["id"]
    remote_id = client.post("/api/mcp", json=remote_payload("remote_echo")).json()["data"]["id"]

    local = client.get(f"/api/mcp/tools/info/{local_id}").json()["tool"]
    assert local["registered"] is True
    assert [p["name"] for p in local["parameters"]] == ["text", "repeat"]

    assert client.get(f"/api/mcp/tools/info/{ghost_id}").json()["tool"]["registered"] is False

    remote = client.get(f"/api/mcp/tools/info/{remote_id}").json()["tool"]
    assert remote["registered"] is True
    assert remote["endpoint"]["url"] == MCP_BASE_URL

    assert client.get("/api/mcp/tools/info/9999").status_code == 404


def test_startup_registers_existing_remote_tools(session_factory, add_remote_tool, runtime):
    from fastapi.testclient import TestClient

    from toolhub.app.main import create_app

    enabled = add_remote_tool("remote_echo")
    disabled = add_remote_tool("remote_off", status=ToolStatus.DISABLED)

    with TestClient(create_app(runtime)) as c:
        assert runtime.endpoints.is_registered(enabled.id)
        assert not runtime.endpoints.is_registered(disabled.id)
        assert runtime.local_registry.initialized
        assert c.post("/api/mcp/tools/invoke/remote_echo", json={"text": "hi"}).json()["response"] == "hi"
