import pytest


@pytest.fixture
def session_id(client, six_names):
    response = client.post("/api/sessions")
    assert response.status_code == 201
    identifier = response.json()["id"]
    for name in six_names:
        assert client.post(f"/api/sessions/{identifier}/items", json={"name": name.upper()}).status_code == 200
    return identifier


def test_new_session_is_empty(client):
    response = client.post("/api/sessions")
    payload = response.json()
    assert payload["items"] == []
    assert payload["group_size"] == 2
    assert payload["feasibility"] == {
        "feasible": False,
        "max_group_size": 2,
        "missing_count": 0,
        "possible_groups": 0,
    }
    assert payload["result"] is None


def test_unknown_session(client):
    response = client.get("/api/sessions/missing")
    assert response.status_code == 404
    assert "missing" in response.json()["message"]


def test_items_are_normalized(client, session_id, six_names):
    payload = client.get(f"/api/sessions/{session_id}").json()
    assert payload["items"] == six_names
    assert payload["feasibility"]["feasible"] is True

    duplicate = client.post(f"/api/sessions/{session_id}/items", json={"name": " Alice "})
    assert duplicate.status_code == 400


def test_group_size_controls(client, session_id):
    assert client.put(f"/api/sessions/{session_id}/group-size", json={"group_size": 9}).json()["group_size"] == 3
    assert client.post(f"/api/sessions/{session_id}/group-size/increment").json()["group_size"] == 3
    assert client.post(f"/api/sessions/{session_id}/group-size/decrement").json()["group_size"] == 2
    assert client.post(f"/api/sessions/{session_id}/group-size/decrement").json()["group_size"] == 2


def test_constraints_and_candidates(client, session_id):
    response = client.post(f"/api/sessions/{session_id}/constraints", json={"first": "alice", "second": "bob"})
    assert response.status_code == 200
    assert response.json()["constraints"] == [{"first": "alice", "second": "bob"}]

    candidates = client.get(f"/api/sessions/{session_id}/constraints/candidates", params={"item": "Alice"}).json()
    assert candidates == {"item": "alice", "candidates": ["carol", "dave", "erin", "frank"]}

    self_pair = client.post(f"/api/sessions/{session_id}/constraints", json={"first": "carol", "second": "carol"})
    assert self_pair.status_code == 400

    removed = client.delete(f"/api/sessions/{session_id}/constraints/0")
    assert removed.json()["constraints"] == []


def test_remove_constraint_by_pair(client, session_id):
    client.post(f"/api/sessions/{session_id}/constraints", json={"first": "alice", "second": "bob"})
    client.post(f"/api/sessions/{session_id}/constraints", json={"first": "carol", "second": "dave"})

    response = client.request("DELETE", f"/api/sessions/{session_id}/constraints", json={"first": "Bob", "second": "alice"})
    assert response.status_code == 200
    assert response.json()["constraints"] == [{"first": "carol", "second": "dave"}]

    missing = client.request("DELETE", f"/api/sessions/{session_id}/constraints", json={"first": "erin", "second": "frank"})
    assert missing.status_code == 200
    assert len(missing.json()["constraints"]) == 1


def test_removing_item_cascades(client, session_id):
    client.post(f"/api/sessions/{session_id}/constraints", json={"first": "alice", "second": "bob"})
    response = client.delete(f"/api/sessions/{session_id}/items/bob")
    assert response.status_code == 200
    payload = response.json()
    assert "bob" not in payload["items"]
    assert payload["constraints"] == []
    assert payload["feasibility"]["missing_count"] == 1


def test_generate_and_page_combinations(client, session_id):
    client.post(f"/api/sessions/{session_id}/constraints", json={"first": "alice", "second": "bob"})
    response = client.post(f"/api/sessions/{session_id}/generate", json={"mode": "exhaustive"})
    assert response.status_code == 200
    result = response.json()
    assert result["mode"] == "exhaustive"
    assert result["enumeration"]["count"] == 12

    current = client.get(f"/api/sessions/{session_id}/combinations/current").json()
    assert current["index"] == 0
    assert current["total"] == 12
    assert current["groups"] == result["enumeration"]["partitions"][0]

    following = client.post(f"/api/sessions/{session_id}/combinations/next").json()
    assert following["index"] == 1
    back = client.post(f"/api/sessions/{session_id}/combinations/previous").json()
    assert back["index"] == 0


def test_input_change_discards_result(client, session_id):
    client.post(f"/api/sessions/{session_id}/generate", json={"mode": "exhaustive"})
    assert client.get(f"/api/sessions/{session_id}").json()["result"] is not None

    client.put(f"/api/sessions/{session_id}/group-size", json={"group_size": 3})
    assert client.get(f"/api/sessions/{session_id}").json()["result"] is None
    assert client.get(f"/api/sessions/{session_id}/combinations/current").status_code == 404


def test_generate_repair_mode(client, session_id):
    response = client.post(
        f"/api/sessions/{session_id}/generate",
        json={"mode": "repair", "random_seed": 9, "max_attempts": 50},
    )
    assert response.status_code == 200
    result = response.json()
    assert result["repair"]["violation_count"] == 0
    assert len(result["repair"]["partition"]) == 3


def test_generate_infeasible(client, session_id):
    client.post(f"/api/sessions/{session_id}/items", json={"name": "gina"})
    response = client.post(f"/api/sessions/{session_id}/generate", json={"mode": "exhaustive"})
    assert response.status_code == 422
    assert response.json()["details"]["reason"] == "divisibility"


def test_delete_session(client, session_id):
    assert client.delete(f"/api/sessions/{session_id}").status_code == 204
    assert client.get(f"/api/sessions/{session_id}").status_code == 404
