from models import TIME_SLOTS

ALICE = {"X-User-Id": "1"}
BOB = {"X-User-Id": "2"}
DAY = "2024-03-01"


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_slots_are_the_fixed_ten(client):
    response = await client.get("/slots")
    assert response.status_code == 200
    assert response.json() == list(TIME_SLOTS)
    assert len(response.json()) == 10


async def test_missing_identity_is_unauthorized(client):
    response = await client.post("/bookings", json={"date": DAY, "slots": ["09:00 - 10:00"]})
    assert response.status_code == 401


async def test_book_all_then_conflict_then_cancel(client):
    response = await client.post(
        "/bookings", json={"date": DAY, "slots": ["09:00 - 10:00", "10:00 - 11:00"]}, headers=ALICE
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "All slots booked successfully"
    assert [b["time_slot"] for b in body["bookings"]] == ["09:00 - 10:00", "10:00 - 11:00"]
    nine_id = body["bookings"][0]["id"]

    response = await client.post("/bookings", json={"date": DAY, "slots": ["09:00 - 10:00"]}, headers=BOB)
    assert response.status_code == 409
    assert response.json() == {
        "error": "No slots were booked",
        "details": ["Slot 09:00 - 10:00 is already booked"],
    }

    response = await client.delete(f"/bookings/{nine_id}", headers=ALICE)
    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "cancelled"

    response = await client.post("/bookings", json={"date": DAY, "slots": ["09:00 - 10:00"]}, headers=BOB)
    assert response.status_code == 201


async def test_partial_success_is_multi_status(client):
    await client.post("/bookings", json={"date": DAY, "slots": ["10:00 - 11:00"]}, headers=BOB)

    response = await client.post(
        "/bookings", json={"date": DAY, "slots": ["09:00 - 10:00", "10:00 - 11:00"]}, headers=ALICE
    )

    assert response.status_code == 207
    body = response.json()
    assert body["message"] == "1 slot(s) booked successfully"
    assert body["warnings"] == ["Slot 10:00 - 11:00 is already booked"]
    assert [b["time_slot"] for b in body["bookings"]] == ["09:00 - 10:00"]


async def test_capacity_exceeded_reports_existing(client):
    await client.post("/bookings", json={"date": DAY, "slots": ["08:00 - 09:00"]}, headers=ALICE)

    response = await client.post(
        "/bookings", json={"date": DAY, "slots": ["09:00 - 10:00", "10:00 - 11:00"]}, headers=ALICE
    )

    assert response.status_code == 400
    body = response.json()
    assert body["existing"] == 1
    assert body["error"] == "You can only book 2 slots per day. You already have 1 slot(s) booked."


async def test_invalid_batch_is_bad_request(client):
    response = await client.post("/bookings", json={"date": DAY, "slots": []}, headers=ALICE)
    assert response.status_code == 400

    response = await client.post("/bookings", json={"date": DAY, "slots": ["18:00 - 19:00"]}, headers=ALICE)
    assert response.status_code == 400


async def test_malformed_date_is_rejected(client):
    response = await client.post("/bookings", json={"date": "tomorrow", "slots": ["09:00 - 10:00"]}, headers=ALICE)
    assert response.status_code == 422


async def test_cancel_someone_elses_booking_is_not_found(client):
    response = await client.post("/bookings", json={"date": DAY, "slots": ["09:00 - 10:00"]}, headers=ALICE)
    booking_id = response.json()["bookings"][0]["id"]

    response = await client.delete(f"/bookings/{booking_id}", headers=BOB)
    assert response.status_code == 404
    assert response.json() == {"detail": "Booking not found"}


async def test_listing_room_and_own_bookings(client):
    await client.post("/bookings", json={"date": DAY, "slots": ["08:00 - 09:00"]}, headers=ALICE)
    await client.post("/bookings", json={"date": DAY, "slots": ["09:00 - 10:00"]}, headers=BOB)
    await client.post("/bookings", json={"date": "2024-03-02", "slots": ["09:00 - 10:00"]}, headers=ALICE)

    response = await client.get("/bookings", params={"target_date": DAY}, headers=ALICE)
    assert sorted(b["time_slot"] for b in response.json()) == ["08:00 - 09:00", "09:00 - 10:00"]

    response = await client.get("/bookings", params={"target_date": DAY, "mine": "true"}, headers=ALICE)
    assert [b["time_slot"] for b in response.json()] == ["08:00 - 09:00"]

    response = await client.get("/bookings", headers=ALICE)
    assert [(b["date"], b["time_slot"]) for b in response.json()] == [
        (DAY, "08:00 - 09:00"),
        ("2024-03-02", "09:00 - 10:00"),
    ]


async def test_availability_grid(client):
    await client.post("/bookings", json={"date": DAY, "slots": ["08:00 - 09:00"]}, headers=ALICE)
    await client.post("/bookings", json={"date": DAY, "slots": ["09:00 - 10:00"]}, headers=BOB)

    response = await client.get("/availability", params={"target_date": DAY}, headers=ALICE)

    assert response.status_code == 200
    grid = {entry["time_slot"]: entry["status"] for entry in response.json()}
    assert len(grid) == 10
    assert grid["08:00 - 09:00"] == "mine"
    assert grid["09:00 - 10:00"] == "booked"
    assert grid["10:00 - 11:00"] == "available"
