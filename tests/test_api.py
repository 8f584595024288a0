"""HTTP surface: routing, auth and error rendering."""
from conftest import auth_headers, LEADER_ID, MEMBER_A, MEMBER_B

LEADER = auth_headers(LEADER_ID)
ALICE = auth_headers(MEMBER_A)
BOB = auth_headers(MEMBER_B)

TRIP_BODY = {
    "title": "Lake weekend",
    "start_bound": "2025-06-01",
    "end_bound": "2025-06-10",
    "trip_length_days": 3,
}


async def create_trip(client, **overrides):
    response = await client.post("/trips", json={**TRIP_BODY, **overrides}, headers=LEADER)
    assert response.status_code == 201, response.text
    return response.json()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_requires_bearer_token(client):
    response = await client.post("/trips", json=TRIP_BODY)
    assert response.status_code in (401, 403)

    response = await client.post("/trips", json=TRIP_BODY, headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401


async def test_create_and_fetch_trip(client):
    trip = await create_trip(client)
    assert trip["status"] == "proposed"
    assert trip["leader_id"] == LEADER_ID

    response = await client.get(f"/trips/{trip['id']}", headers=ALICE)
    assert response.status_code == 200
    assert response.json()["title"] == "Lake weekend"


async def test_invalid_bounds_rendered_as_error_payload(client):
    response = await client.post(
        "/trips", json={**TRIP_BODY, "end_bound": "2025-06-02"}, headers=LEADER
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRIP_BOUNDS"


async def test_unknown_trip_is_404(client):
    response = await client.get("/trips/999", headers=LEADER)
    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "TRIP_NOT_FOUND"
    assert body["trip_id"] == 999


async def test_valid_starts(client):
    trip = await create_trip(client)
    response = await client.get(f"/trips/{trip['id']}/valid-starts", headers=ALICE)
    body = response.json()
    assert body["count"] == 8
    assert body["starts"][0] == "2025-06-01"
    assert body["starts"][-1] == "2025-06-08"


async def test_pick_out_of_range(client):
    trip = await create_trip(client)
    response = await client.post(
        f"/trips/{trip['id']}/date-picks/1", json={"start_date": "2025-06-09"}, headers=ALICE
    )
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INVALID_WINDOW"
    assert body["last_valid_start"] == "2025-06-08"


async def test_rank_outside_range_rejected_by_validation(client):
    trip = await create_trip(client)
    response = await client.post(
        f"/trips/{trip['id']}/date-picks/4", json={"start_date": "2025-06-02"}, headers=ALICE
    )
    assert response.status_code == 422


async def test_full_scheduling_flow(client):
    trip = await create_trip(client)
    trip_id = trip["id"]

    response = await client.post(
        f"/trips/{trip_id}/date-picks/1", json={"start_date": "2025-06-03"}, headers=ALICE
    )
    assert response.status_code == 200
    assert response.json()["picks"] == [
        {"rank": 1, "start_date": "2025-06-03", "end_date": "2025-06-05"}
    ]

    response = await client.put(
        f"/trips/{trip_id}/date-picks",
        json={"picks": [
            {"rank": 1, "start_date": "2025-06-03"},
            {"rank": 2, "start_date": "2025-06-01"},
        ]},
        headers=BOB,
    )
    assert response.status_code == 200
    assert len(response.json()["picks"]) == 2

    response = await client.get(f"/trips/{trip_id}/candidates", params={"k": 2}, headers=ALICE)
    candidates = response.json()["candidates"]
    assert [(c["option_key"], c["score"]) for c in candidates] == [
        ("2025-06-03|2025-06-05", 6),
        ("2025-06-01|2025-06-03", 2),
    ]

    response = await client.get(f"/trips/{trip_id}/heatmap", headers=ALICE)
    assert response.json()["scores"]["2025-06-03"] == 8

    response = await client.post(f"/trips/{trip_id}/open-voting", params={"k": 2}, headers=ALICE)
    assert response.status_code == 403
    assert response.json()["code"] == "LEADER_ONLY"

    response = await client.post(f"/trips/{trip_id}/open-voting", params={"k": 2}, headers=LEADER)
    assert response.status_code == 200
    assert len(response.json()["options"]) == 2

    response = await client.post(
        f"/trips/{trip_id}/date-picks/3", json={"start_date": "2025-06-05"}, headers=ALICE
    )
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "STAGE_BLOCKED"
    assert body["current_status"] == "voting"

    response = await client.post(
        f"/trips/{trip_id}/vote", json={"option_key": "2025-06-01|2025-06-03"}, headers=ALICE
    )
    assert response.status_code == 200
    assert response.json()["option_key"] == "2025-06-01|2025-06-03"

    response = await client.get(f"/trips/{trip_id}/vote", headers=BOB)
    assert response.json() is None
    response = await client.get(f"/trips/{trip_id}/vote", headers=ALICE)
    assert response.json()["option_key"] == "2025-06-01|2025-06-03"

    response = await client.get(
        f"/trips/{trip_id}/voting-status", params={"active_member_count": 2}, headers=ALICE
    )
    status = response.json()
    assert status["voted_count"] == 1
    assert status["has_current_member_voted"] is True

    response = await client.post(
        f"/trips/{trip_id}/lock", json={"option_key": "2025-06-01|2025-06-03"}, headers=LEADER
    )
    assert response.status_code == 200
    locked = response.json()
    assert locked["status"] == "locked"
    assert locked["locked_start_date"] == "2025-06-01"
    assert locked["locked_end_date"] == "2025-06-03"

    response = await client.post(
        f"/trips/{trip_id}/lock", json={"option_key": "2025-06-03|2025-06-05"}, headers=LEADER
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Trip is already locked"

    response = await client.get(f"/trips/{trip_id}/progress", headers=LEADER)
    assert response.json()["responded_count"] == 2


async def test_clear_picks(client):
    trip = await create_trip(client)
    await client.post(
        f"/trips/{trip['id']}/date-picks/2", json={"start_date": "2025-06-04"}, headers=ALICE
    )
    response = await client.delete(f"/trips/{trip['id']}/date-picks", headers=ALICE)
    assert response.json() == {"status": "ok", "removed": 1}

    response = await client.get(f"/trips/{trip['id']}/date-picks", headers=ALICE)
    assert response.json()["picks"] == []


async def test_delete_trip_leader_only(client):
    trip = await create_trip(client)
    response = await client.delete(f"/trips/{trip['id']}", headers=ALICE)
    assert response.status_code == 403

    response = await client.delete(f"/trips/{trip['id']}", headers=LEADER)
    assert response.status_code == 200
    response = await client.get(f"/trips/{trip['id']}", headers=LEADER)
    assert response.status_code == 404
