"""Bracket HTTP endpoints: events, registrations, generation, results, reset."""

import pytest
from fastapi.testclient import TestClient


def _create_event(client: TestClient, name="Open Singles", **fields):
    payload = {"name": name, "format": "single-elimination"}
    payload.update(fields)
    response = client.post("/api/events", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _register(client: TestClient, event_id: int, count: int):
    ids = []
    for i in range(1, count + 1):
        response = client.post(f"/api/events/{event_id}/registrations", json={"name": f"Player {i}"})
        assert response.status_code == 201, response.text
        ids.append(response.json()["id"])
    return ids


@pytest.fixture
def five_player_event(client: TestClient):
    event = _create_event(client)
    ids = _register(client, event["id"], 5)
    return event, ids


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_and_get_event(client: TestClient):
    event = _create_event(client, best_of=5, has_third_place_match=True)
    assert event["format"] == "single-elimination"
    assert event["best_of"] == 5
    assert event["completed"] is False

    response = client.get(f"/api/events/{event['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "Open Singles"
    assert any(e["id"] == event["id"] for e in client.get("/api/events").json())


def test_event_validation(client: TestClient):
    assert client.post("/api/events", json={"name": "  ", "format": "single-elimination"}).status_code == 422
    assert client.post("/api/events", json={"name": "Even", "best_of": 4}).status_code == 422
    assert client.post("/api/events", json={"name": "Ladder", "format": "ladder"}).status_code == 422
    response = client.post(
        "/api/events",
        json={"name": "Single", "format": "single-elimination", "losers_start_rounds_before_final": 1},
    )
    assert response.status_code == 422


def test_duplicate_event_name(client: TestClient):
    _create_event(client, name="Dup")
    assert client.post("/api/events", json={"name": "Dup"}).status_code == 409


def test_missing_event(client: TestClient):
    assert client.get("/api/events/424242").status_code == 404
    assert client.post("/api/events/424242/generate-bracket").status_code == 404


def test_registration_constraints(client: TestClient):
    event = _create_event(client)
    url = f"/api/events/{event['id']}/registrations"
    assert client.post(url, json={"name": "Ana", "seed": 1}).status_code == 201
    assert client.post(url, json={"name": "Ana"}).status_code == 409
    assert client.post(url, json={"name": "Bo", "seed": 1}).status_code == 409
    assert client.post(url, json={"name": "Cy", "seed": 0}).status_code == 422
    assert [r["name"] for r in client.get(url).json()] == ["Ana"]


def test_generate_bracket_five_players(client: TestClient, five_player_event):
    event, ids = five_player_event

    response = client.post(f"/api/events/{event['id']}/generate-bracket")

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["bracket_size"] == 8
    assert data["total_rounds"] == 3
    assert data["match_count"] == 7
    assert sum(1 for m in data["matches"] if m["is_bye"] and m["played"]) == 3

    bracket = client.get(f"/api/events/{event['id']}/bracket").json()
    assert bracket["summary"]["match_count"] == 7
    assert bracket["summary"]["bye_count"] == 3
    assert bracket["summary"]["played_count"] == 3
    assert [m["bracket_position"] for m in bracket["matches"]] == list(range(1, 8))


def test_generate_twice_conflicts(client: TestClient, five_player_event):
    event, _ = five_player_event
    assert client.post(f"/api/events/{event['id']}/generate-bracket").status_code == 201

    response = client.post(f"/api/events/{event['id']}/generate-bracket")

    assert response.status_code == 409
    assert "already generated" in response.json()["detail"]
    assert client.get(f"/api/events/{event['id']}/bracket").json()["summary"]["match_count"] == 7


def test_generate_with_unknown_seed(client: TestClient, five_player_event):
    event, ids = five_player_event
    response = client.post(
        f"/api/events/{event['id']}/generate-bracket",
        json={"seeds": [{"registration_id": ids[0], "seed": 1}, {"registration_id": 777777, "seed": 2}]},
    )
    assert response.status_code == 422
    assert "777777" in response.json()["detail"]
    assert client.get(f"/api/events/{event['id']}/bracket").json()["matches"] == []


def test_generate_with_seeds_stores_them(client: TestClient, five_player_event):
    event, ids = five_player_event
    response = client.post(
        f"/api/events/{event['id']}/generate-bracket",
        json={"seeds": [{"registration_id": ids[4], "seed": 1}]},
    )
    assert response.status_code == 201
    first = response.json()["matches"][0]
    assert first["registration_a_id"] == ids[4]
    assert first["is_bye"] is True

    registrations = client.get(f"/api/events/{event['id']}/registrations").json()
    assert {r["id"]: r["seed"] for r in registrations}[ids[4]] == 1


def test_generate_uses_stored_seeds(client: TestClient):
    event = _create_event(client)
    url = f"/api/events/{event['id']}/registrations"
    client.post(url, json={"name": "Low"})
    top = client.post(url, json={"name": "Top", "seed": 1}).json()["id"]

    response = client.post(f"/api/events/{event['id']}/generate-bracket")

    assert response.json()["matches"][0]["registration_a_id"] == top


def test_generate_with_empty_seeds_clears_stored_seeds(client: TestClient):
    event = _create_event(client)
    url = f"/api/events/{event['id']}/registrations"
    ids = [client.post(url, json={"name": f"Player {i}", "seed": 5 - i}).json()["id"] for i in range(1, 5)]

    response = client.post(f"/api/events/{event['id']}/generate-bracket", json={"seeds": []})

    assert response.status_code == 201, response.text
    first = response.json()["matches"][0]
    assert (first["registration_a_id"], first["registration_b_id"]) == (ids[0], ids[3])
    assert [r["seed"] for r in client.get(url).json()] == [None, None, None, None]


def test_generate_needs_two_registrations(client: TestClient):
    event = _create_event(client)
    _register(client, event["id"], 1)
    response = client.post(f"/api/events/{event['id']}/generate-bracket")
    assert response.status_code == 400
    assert "At least 2" in response.json()["detail"]


def test_group_event_has_no_bracket(client: TestClient):
    event = _create_event(client, format="groups")
    _register(client, event["id"], 4)
    assert client.post(f"/api/events/{event['id']}/generate-bracket").status_code == 400
    assert client.get(f"/api/events/{event['id']}/bracket").status_code == 400


def test_enter_result_and_advance(client: TestClient, five_player_event):
    event, ids = five_player_event
    matches = client.post(f"/api/events/{event['id']}/generate-bracket").json()["matches"]
    open_match = next(m for m in matches if m["round_number"] == 1 and not m["is_bye"])

    response = client.patch(
        f"/api/events/{event['id']}/matches/{open_match['id']}",
        json={"played": True, "sets": [{"a": 11, "b": 4}, {"a": 11, "b": 6}]},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["match"]["winner_id"] == open_match["registration_a_id"]
    assert data["advanced_count"] == 1
    assert [s["set_number"] for s in data["sets"]] == [1, 2]

    bracket = client.get(f"/api/events/{event['id']}/bracket").json()
    target = next(m for m in bracket["matches"] if m["id"] == open_match["winner_to_id"])
    slot_key = "registration_a_id" if open_match["winner_to_slot"] == 1 else "registration_b_id"
    assert target[slot_key] == open_match["registration_a_id"]

    advance = client.post(f"/api/events/{event['id']}/matches/{open_match['id']}/advance")
    assert advance.status_code == 200
    assert advance.json() == {"advanced_count": 0}


def test_result_errors_map_to_status_codes(client: TestClient, five_player_event):
    event, ids = five_player_event
    matches = client.post(f"/api/events/{event['id']}/generate-bracket").json()["matches"]
    bye = next(m for m in matches if m["is_bye"])
    open_match = next(m for m in matches if m["round_number"] == 1 and not m["is_bye"])
    final = next(m for m in matches if m["winner_to_id"] is None)
    base = f"/api/events/{event['id']}/matches"

    # Result for a bye: broken invariant, generic message
    response = client.patch(f"{base}/{bye['id']}", json={"played": True, "winner_id": bye["winner_id"]})
    assert response.status_code == 500
    assert "inconsistent" in response.json()["detail"]

    # Not an occupant
    response = client.patch(f"{base}/{open_match['id']}", json={"played": True, "winner_id": ids[0]})
    assert response.status_code == 422

    # Sides not known yet
    response = client.patch(f"{base}/{final['id']}", json={"played": True, "winner_id": ids[0]})
    assert response.status_code == 422

    # Already played
    winner = open_match["registration_b_id"]
    assert client.patch(f"{base}/{open_match['id']}", json={"played": True, "winner_id": winner}).status_code == 200
    assert client.patch(f"{base}/{open_match['id']}", json={"played": True, "winner_id": winner}).status_code == 409

    # Unknown match
    assert client.patch(f"{base}/987654", json={"played": True, "winner_id": winner}).status_code == 404

    # Advance on unplayed match
    assert client.post(f"{base}/{final['id']}/advance").status_code == 400


def test_revert_result(client: TestClient, five_player_event):
    event, _ = five_player_event
    matches = client.post(f"/api/events/{event['id']}/generate-bracket").json()["matches"]
    open_match = next(m for m in matches if m["round_number"] == 1 and not m["is_bye"])
    url = f"/api/events/{event['id']}/matches/{open_match['id']}"
    client.patch(url, json={"played": True, "winner_id": open_match["registration_a_id"]})

    response = client.patch(url, json={"played": False})

    assert response.status_code == 200
    assert response.json()["match"]["played"] is False
    assert response.json()["match"]["winner_id"] is None
    assert client.patch(url, json={"played": False}).status_code == 400


def test_play_out_double_elimination(client: TestClient):
    event = _create_event(client, name="Doubles", format="double-elimination")
    _register(client, event["id"], 4)
    client.post(f"/api/events/{event['id']}/generate-bracket")
    base = f"/api/events/{event['id']}"

    # Always let slot A win whatever is playable, until nothing is left
    for _ in range(20):
        bracket = client.get(f"{base}/bracket").json()
        playable = [
            m
            for m in bracket["matches"]
            if not m["played"] and m["registration_a_id"] is not None and m["registration_b_id"] is not None
        ]
        if not playable:
            break
        match = playable[0]
        response = client.patch(
            f"{base}/matches/{match['id']}", json={"played": True, "winner_id": match["registration_a_id"]}
        )
        assert response.status_code == 200, response.text

    bracket = client.get(f"{base}/bracket").json()
    assert bracket["completed"] is True
    reset = next(m for m in bracket["matches"] if m["is_reset"])
    assert reset["played"] is False
    assert client.get(f"{base}").json()["completed"] is True


def test_reset_and_regenerate(client: TestClient, five_player_event):
    event, _ = five_player_event
    base = f"/api/events/{event['id']}"
    first = client.post(f"{base}/generate-bracket").json()

    response = client.delete(f"{base}/bracket")
    assert response.status_code == 200
    assert response.json()["deleted_matches"] == 7
    assert client.delete(f"{base}/bracket").status_code == 400

    second = client.post(f"{base}/generate-bracket").json()

    def shape(data):
        return [
            (m["round_number"], m["match_number"], m["registration_a_id"], m["registration_b_id"], m["is_bye"])
            for m in data["matches"]
        ]

    assert shape(second) == shape(first)


def test_reapply_advancements_endpoint(client: TestClient, five_player_event):
    event, _ = five_player_event
    base = f"/api/events/{event['id']}"
    client.post(f"{base}/generate-bracket")

    response = client.post(f"{base}/bracket/reapply-advancements")

    assert response.status_code == 200
    data = response.json()
    assert data["matches_processed"] == 3
    assert data["slots_filled"] == 0
