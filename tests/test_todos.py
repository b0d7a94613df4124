import app as app_module


def test_list_is_empty_on_a_fresh_store(client):
    r = client.get("/api/todos")
    assert r.status_code == 200
    assert r.json() == []


def test_create_returns_201_with_defaults(client):
    r = client.post("/api/todos", json={"text": "Buy milk"})
    assert r.status_code == 201
    todo = r.json()
    assert todo["id"] == 1
    assert todo["text"] == "Buy milk"
    assert todo["completed"] is False
    assert todo["priority"] == "medium"
    assert todo["date"]
    assert todo["createdAt"].endswith("Z")


def test_created_todo_is_at_the_head_of_the_list(client):
    client.post("/api/todos", json={"text": "First"})
    created = client.post("/api/todos", json={"text": "Buy milk"}).json()
    todos = client.get("/api/todos").json()
    assert todos[0] == created
    assert [t["text"] for t in todos] == ["Buy milk", "First"]


def test_create_trims_text_and_keeps_priority(client):
    r = client.post("/api/todos", json={"text": "  Call mom  ", "priority": "high"})
    assert r.json()["text"] == "Call mom"
    assert r.json()["priority"] == "high"


def test_create_with_blank_text_returns_400_and_leaves_list_unchanged(client):
    client.post("/api/todos", json={"text": "Keep me"})
    for body in [{"text": ""}, {"text": "   "}, {}]:
        r = client.post("/api/todos", json=body)
        assert r.status_code == 400
        assert r.json() == {"error": "Todo text is required"}
    assert [t["text"] for t in client.get("/api/todos").json()] == ["Keep me"]


def test_create_with_unknown_priority_returns_400(client):
    r = client.post("/api/todos", json={"text": "x", "priority": "urgent"})
    assert r.status_code == 400
    assert "priority" in r.json()["error"]


def test_create_without_body_returns_text_required(client):
    r = client.post("/api/todos")
    assert r.status_code == 400
    assert r.json() == {"error": "Todo text is required"}
    assert client.get("/api/todos").json() == []


def test_ids_are_never_reused_after_delete(client):
    first = client.post("/api/todos", json={"text": "a"}).json()
    client.delete(f"/api/todos/{first['id']}")
    second = client.post("/api/todos", json={"text": "b"}).json()
    assert second["id"] == first["id"] + 1


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

def test_update_overwrites_only_present_fields(client):
    todo = client.post("/api/todos", json={"text": "Read", "priority": "low"}).json()
    r = client.put(f"/api/todos/{todo['id']}", json={"completed": True})
    assert r.status_code == 200
    updated = r.json()
    assert updated["completed"] is True
    assert updated["text"] == "Read"
    assert updated["priority"] == "low"
    assert updated["createdAt"] == todo["createdAt"]


def test_update_null_fields_are_ignored(client):
    todo = client.post("/api/todos", json={"text": "Read"}).json()
    r = client.put(f"/api/todos/{todo['id']}", json={"text": None, "priority": "high"})
    assert r.json()["text"] == "Read"
    assert r.json()["priority"] == "high"


def test_update_unknown_id_returns_404(client):
    r = client.put("/api/todos/999", json={"completed": True})
    assert r.status_code == 404
    assert r.json() == {"error": "Todo not found"}
    assert client.get("/api/todos").json() == []


def test_update_rejects_blank_text(client):
    todo = client.post("/api/todos", json={"text": "Read"}).json()
    r = client.put(f"/api/todos/{todo['id']}", json={"text": "  "})
    assert r.status_code == 400
    assert client.get("/api/todos").json()[0]["text"] == "Read"


def test_update_with_non_integer_id_returns_400(client):
    r = client.put("/api/todos/abc", json={"completed": True})
    assert r.status_code == 400
    assert "error" in r.json()


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def test_delete_removes_exactly_one_and_keeps_order(client):
    for text in ["a", "b", "c", "d"]:
        client.post("/api/todos", json={"text": text})
    target = client.get("/api/todos").json()[1]
    r = client.delete(f"/api/todos/{target['id']}")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Todo deleted"}
    assert [t["text"] for t in client.get("/api/todos").json()] == ["d", "b", "a"]


def test_delete_unknown_id_returns_404(client):
    client.post("/api/todos", json={"text": "a"})
    r = client.delete("/api/todos/42")
    assert r.status_code == 404
    assert r.json() == {"error": "Todo not found"}
    assert len(client.get("/api/todos").json()) == 1


# ---------------------------------------------------------------------------
# Info, health and CORS
# ---------------------------------------------------------------------------

def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert "timestamp" in r.json()


def test_info_lists_endpoints(client):
    r = client.get("/api")
    assert r.status_code == 200
    assert r.json()["endpoints"]["getTodos"] == "GET /api/todos"


def test_allowed_origin_gets_cors_headers(client):
    origin = app_module.ALLOWED_ORIGINS[0]
    r = client.get("/api/todos", headers={"Origin": origin})
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == origin


def test_disallowed_origin_is_rejected(client):
    r = client.get("/api/todos", headers={"Origin": "https://evil.example"})
    assert r.status_code == 403
    assert "CORS" in r.json()["error"]
