from conftest import MONDAY, auth, make_service, make_time_slot

from app.models import Reservation, ReservationService, ReservationStatus


def create_slot(client, **body):
    return client.post("/time-slot", json=body, headers=auth("admin-token"))


def book_directly(db, user, slot, day, status=ReservationStatus.PENDING):
    service = make_service(db, name=f"svc-{slot.id}-{day}-{status.value}")
    reservation = Reservation(
        user_id=user.id,
        time_slot_id=slot.id,
        date=day,
        license="ABC-1234",
        status=status.value,
        service_links=[ReservationService(service_id=service.id, position=0)],
    )
    db.add(reservation)
    db.commit()
    return reservation


class TestCreate:
    def test_defaults_applied(self, client, admin):
        response = create_slot(client, dayOfWeek=1, startTime="09:00")
        assert response.status_code == 201
        body = response.json()
        assert body["dayOfWeek"] == 1
        assert body["startTime"] == "09:00"
        assert body["capacity"] == 1
        assert body["isActive"] is True

        fetched = client.get(f"/time-slot/{body['id']}", headers=auth("admin-token"))
        assert fetched.status_code == 200
        assert fetched.json()["startTime"] == "09:00"

    def test_duplicate_pair_rejected_even_when_inactive(self, client, admin):
        assert create_slot(client, dayOfWeek=2, startTime="10:00", isActive=False).status_code == 201
        response = create_slot(client, dayOfWeek=2, startTime="10:00")
        assert response.status_code == 400
        assert response.json() == {"error": "Time slot already exists"}

    def test_field_validation(self, client, admin):
        assert create_slot(client, dayOfWeek=7, startTime="09:00").status_code == 400
        assert create_slot(client, dayOfWeek=1, startTime="24:00").status_code == 400
        assert create_slot(client, dayOfWeek=1, startTime="09:00", capacity=0).status_code == 400
        assert create_slot(client, startTime="09:00").status_code == 400

    def test_requires_admin(self, client, customer):
        response = client.post(
            "/time-slot", json={"dayOfWeek": 1, "startTime": "09:00"}, headers=auth("customer-token")
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Insufficient permissions"}

    def test_requires_token(self, client):
        response = client.post("/time-slot", json={"dayOfWeek": 1, "startTime": "09:00"})
        assert response.status_code == 401
        assert "error" in response.json()


class TestUpdate:
    def test_collision_with_other_template(self, client, admin, db):
        make_time_slot(db, day_of_week=1, start_time="09:00")
        other = make_time_slot(db, day_of_week=1, start_time="10:00")

        response = client.put(
            f"/time-slot/{other.id}", json={"startTime": "09:00"}, headers=auth("admin-token")
        )
        assert response.status_code == 400

    def test_own_unchanged_fields_do_not_collide(self, client, admin, db):
        slot = make_time_slot(db, day_of_week=1, start_time="09:00")
        response = client.put(
            f"/time-slot/{slot.id}",
            json={"dayOfWeek": 1, "startTime": "09:00", "capacity": 3},
            headers=auth("admin-token"),
        )
        assert response.status_code == 200
        assert response.json()["capacity"] == 3

    def test_missing_template(self, client, admin):
        response = client.put("/time-slot/999", json={"capacity": 2}, headers=auth("admin-token"))
        assert response.status_code == 404


class TestDelete:
    def test_delete_unused(self, client, admin, db):
        slot = make_time_slot(db)
        response = client.delete(f"/time-slot/{slot.id}", headers=auth("admin-token"))
        assert response.status_code == 200
        assert client.get(f"/time-slot/{slot.id}", headers=auth("admin-token")).status_code == 404

    def test_delete_refused_while_referenced(self, client, admin, customer, db):
        slot = make_time_slot(db)
        book_directly(db, customer, slot, MONDAY)
        response = client.delete(f"/time-slot/{slot.id}", headers=auth("admin-token"))
        assert response.status_code == 400
        assert client.get(f"/time-slot/{slot.id}", headers=auth("admin-token")).status_code == 200


def test_copy_day_skips_existing_pairs(client, admin, db):
    make_time_slot(db, day_of_week=1, start_time="09:00", capacity=2)
    make_time_slot(db, day_of_week=1, start_time="13:30")
    make_time_slot(db, day_of_week=2, start_time="09:00")

    response = client.post(
        "/time-slot/copy", json={"sourceDay": 1, "targetDays": [2, 3]}, headers=auth("admin-token")
    )
    assert response.status_code == 200
    assert response.json() == {"created": 3, "skipped": 1}

    slots = client.get("/time-slot", headers=auth("admin-token")).json()
    wednesday = [s for s in slots if s["dayOfWeek"] == 3]
    assert [(s["startTime"], s["capacity"]) for s in wednesday] == [("09:00", 2), ("13:30", 1)]


class TestActive:
    def test_lists_only_active_with_cache_headers(self, client, db):
        make_time_slot(db, day_of_week=1, start_time="09:00")
        make_time_slot(db, day_of_week=1, start_time="10:00", is_active=False)

        response = client.get("/time-slot/active")
        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=30, stale-while-revalidate=30"
        assert [s["startTime"] for s in response.json()] == ["09:00"]

    def test_writes_invalidate_cached_list(self, client, admin):
        assert client.get("/time-slot/active").json() == []
        create_slot(client, dayOfWeek=1, startTime="09:00")
        assert len(client.get("/time-slot/active").json()) == 1


class TestAvailable:
    def test_counts_live_reservations_excluding_cancelled(self, client, customer, db):
        slot = make_time_slot(db, day_of_week=1, start_time="09:00", capacity=2)
        make_time_slot(db, day_of_week=2, start_time="09:00")
        book_directly(db, customer, slot, MONDAY)
        book_directly(db, customer, slot, MONDAY, status=ReservationStatus.CANCELLED)

        response = client.get("/time-slot/available", params={"date": MONDAY.isoformat()})
        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-store"
        body = response.json()
        assert len(body) == 1
        assert body[0]["id"] == slot.id
        assert body[0]["reservedCount"] == 1
        assert body[0]["remaining"] == 1
        assert body[0]["available"] is True

    def test_full_slot_reported_unavailable(self, client, customer, db):
        slot = make_time_slot(db, day_of_week=1, start_time="09:00", capacity=1)
        book_directly(db, customer, slot, MONDAY)
        body = client.get("/time-slot/available", params={"date": MONDAY.isoformat()}).json()
        assert body[0]["available"] is False

    def test_invalid_date(self, client):
        response = client.get("/time-slot/available", params={"date": "not-a-date"})
        assert response.status_code == 400
