"""API tests for the scheduling endpoints."""

from conftest import MONDAY, FailingStore, add_block, add_job, utc
from opsuite.domain.scheduling.availability_service import AvailabilityService
from opsuite.domain.scheduling.router import get_availability_service
from opsuite.main import app


def owner(business) -> dict:
    return {"X-Business-Id": str(business.id)}


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestPublicSlots:
    def test_slots(self, db, client, business):
        add_job(db, business.id, utc(2025, 3, 3, 9), 60)
        response = client.get(f"/scheduling/public/{business.id}/slots", params={"date": MONDAY, "duration": 60})
        assert response.status_code == 200
        body = response.json()
        assert body["date"] == MONDAY
        assert body["slots"][0] == "10:00"
        assert body["slots"][-1] == "16:00"

    def test_closed_day_is_empty_not_an_error(self, client, business):
        response = client.get(f"/scheduling/public/{business.id}/slots", params={"date": "2025-03-08"})
        assert response.status_code == 200
        assert response.json()["slots"] == []

    def test_bad_date(self, client, business):
        response = client.get(f"/scheduling/public/{business.id}/slots", params={"date": "March 3"})
        assert response.status_code == 400

    def test_bad_duration(self, client, business):
        response = client.get(f"/scheduling/public/{business.id}/slots", params={"date": MONDAY, "duration": 0})
        assert response.status_code == 422

    def test_store_failure_is_not_an_open_calendar(self, client, business):
        app.dependency_overrides[get_availability_service] = lambda: AvailabilityService(FailingStore())
        response = client.get(f"/scheduling/public/{business.id}/slots", params={"date": MONDAY})
        assert response.status_code == 503
        assert response.json() == {
            "detail": "Unable to load available times. Please try again.",
            "code": "store_unavailable",
        }


class TestPublicCheckAndBook:
    def test_check(self, client, business):
        url = f"/scheduling/public/{business.id}/check"
        assert client.get(url, params={"date": MONDAY, "time": "10:10"}).json()["available"] is True
        closed = client.get(url, params={"date": "2025-03-08", "time": "10:00"}).json()
        assert closed["available"] is False
        assert closed["message"] == "This time slot is no longer available. Please choose another time."

    def test_book_then_conflict(self, client, business):
        url = f"/scheduling/public/{business.id}/book"
        payload = {"date": MONDAY, "time": "11:00", "duration_minutes": 60, "title": "Standard clean"}

        first = client.post(url, json=payload)
        assert first.status_code == 201
        body = first.json()
        assert body["success"] is True
        assert body["job"]["status"] == "scheduled"
        assert body["message"] == f"Booking confirmed for {MONDAY} at 11:00."

        second = client.post(url, json=payload)
        assert second.status_code == 409
        assert second.json()["code"] == "slot_unavailable"

    def test_midnight_slot_books_once(self, db, client, business):
        business.business_hours = {"monday": {"open": "00:00", "close": "08:00"}}
        db.commit()
        url = f"/scheduling/public/{business.id}/book"
        payload = {"date": MONDAY, "time": "00:00", "duration_minutes": 60, "title": "Night clean"}

        assert client.post(url, json=payload).status_code == 201
        second = client.post(url, json=payload)
        assert second.status_code == 409
        assert second.json()["code"] == "slot_unavailable"

    def test_book_reports_local_time(self, client, chicago_business):
        response = client.post(
            f"/scheduling/public/{chicago_business.id}/book",
            json={"date": MONDAY, "time": "09:00", "title": "Standard clean"},
        )
        assert response.status_code == 201
        assert response.json()["message"].endswith("at 09:00.")

    def test_book_requires_title(self, client, business):
        response = client.post(
            f"/scheduling/public/{business.id}/book",
            json={"date": MONDAY, "time": "11:00", "title": "  "},
        )
        assert response.status_code == 422


class TestOwnerAuth:
    def test_missing_header(self, client):
        assert client.get("/scheduling/time-blocks").status_code == 401

    def test_malformed_header(self, client):
        assert client.get("/scheduling/time-blocks", headers={"X-Business-Id": "acme"}).status_code == 401


class TestTimeBlocks:
    def test_create_list_and_delete(self, client, business):
        created = client.post(
            "/scheduling/time-blocks",
            headers=owner(business),
            json={
                "title": "Team meeting",
                "start_time": "2025-03-03T08:00:00Z",
                "end_time": "2025-03-03T09:00:00Z",
                "type": "unavailable",
                "is_recurring": True,
                "recurrence_pattern": "weekly",
                "recurrence_count": 4,
            },
        )
        assert created.status_code == 201
        block_id = created.json()["id"]

        templates = client.get("/scheduling/time-blocks", headers=owner(business)).json()
        assert [t["id"] for t in templates] == [block_id]
        assert templates[0]["is_recurring"] is True

        instances = client.get(
            "/scheduling/time-blocks",
            headers=owner(business),
            params={"start": "2025-03-01T00:00:00Z", "end": "2025-05-01T00:00:00Z"},
        ).json()
        assert [i["id"] for i in instances] == [f"{block_id}_{n}" for n in range(4)]
        assert all(i["is_recurring_instance"] for i in instances)

        rejected = client.delete(f"/scheduling/time-blocks/{block_id}_1", headers=owner(business))
        assert rejected.status_code == 409
        assert rejected.json()["code"] == "recurring_instance"

        deleted = client.delete(f"/scheduling/time-blocks/{block_id}", headers=owner(business))
        assert deleted.status_code == 200
        assert client.get("/scheduling/time-blocks", headers=owner(business)).json() == []

    def test_invalid_block(self, client, business):
        response = client.post(
            "/scheduling/time-blocks",
            headers=owner(business),
            json={"title": "Backwards", "start_time": "2025-03-03T10:00:00Z", "end_time": "2025-03-03T09:00:00Z"},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "invalid_time_block"

    def test_cannot_delete_other_business_block(self, db, client, business, other_business):
        block = add_block(db, other_business.id, utc(2025, 3, 3, 12), utc(2025, 3, 3, 13))
        response = client.delete(f"/scheduling/time-blocks/{block.id}", headers=owner(business))
        assert response.status_code == 404

    def test_bad_range(self, client, business):
        response = client.get(
            "/scheduling/time-blocks", headers=owner(business), params={"start": "yesterday", "end": "today"}
        )
        assert response.status_code == 400


class TestJobs:
    def test_list_jobs(self, db, client, business):
        job = add_job(db, business.id, utc(2025, 3, 3, 9))
        add_job(db, business.id, utc(2025, 3, 3, 11), status="completed")
        response = client.get(
            "/scheduling/jobs",
            headers=owner(business),
            params={"start": "2025-03-01T00:00:00Z", "end": "2025-03-31T00:00:00Z"},
        )
        assert response.status_code == 200
        assert [j["id"] for j in response.json()] == [job.id]

    def test_reschedule(self, db, client, business):
        job = add_job(db, business.id, utc(2025, 3, 3, 9))
        response = client.patch(
            f"/scheduling/jobs/{job.id}/date",
            headers=owner(business),
            json={"scheduled_date": "2025-03-04T13:00:00Z"},
        )
        assert response.status_code == 200
        assert response.json()["scheduled_date"].startswith("2025-03-04T13:00:00")

    def test_reschedule_conflict(self, db, client, business):
        add_block(db, business.id, utc(2025, 3, 4, 12), utc(2025, 3, 4, 14), title="Vet")
        job = add_job(db, business.id, utc(2025, 3, 3, 9))
        response = client.patch(
            f"/scheduling/jobs/{job.id}/date",
            headers=owner(business),
            json={"scheduled_date": "2025-03-04T13:00:00Z"},
        )
        assert response.status_code == 409
        assert "Vet" in response.json()["detail"]

    def test_reschedule_other_business_job(self, db, client, business, other_business):
        job = add_job(db, other_business.id, utc(2025, 3, 3, 9))
        response = client.patch(
            f"/scheduling/jobs/{job.id}/date",
            headers=owner(business),
            json={"scheduled_date": "2025-03-04T13:00:00Z"},
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Job not found or access denied"

    def test_status_transition(self, db, client, business):
        job = add_job(db, business.id, utc(2025, 3, 3, 9))
        url = f"/scheduling/jobs/{job.id}/status"
        assert client.patch(url, headers=owner(business), json={"status": "in_progress"}).status_code == 200
        bad = client.patch(url, headers=owner(business), json={"status": "scheduled"})
        assert bad.status_code == 409
        assert bad.json()["code"] == "invalid_status_transition"
        assert client.patch(url, headers=owner(business), json={"status": "done"}).status_code == 422


class TestBusinessHoursEndpoints:
    def test_get_and_update(self, client, business):
        hours = client.get("/scheduling/business-hours", headers=owner(business)).json()["hours"]
        assert hours["saturday"] == {"closed": True}

        updated = client.put(
            "/scheduling/business-hours",
            headers=owner(business),
            json={"hours": {"saturday": {"open": "10:00", "close": "14:00"}}},
        )
        assert updated.status_code == 200
        assert updated.json()["hours"]["saturday"] == {"open": "10:00", "close": "14:00", "closed": False}

        slots = client.get(f"/scheduling/public/{business.id}/slots", params={"date": "2025-03-08"}).json()
        assert slots["slots"] == ["10:00", "10:30", "11:00", "11:30", "12:00", "12:30", "13:00"]

    def test_invalid_update(self, client, business):
        response = client.put(
            "/scheduling/business-hours",
            headers=owner(business),
            json={"hours": {"monday": {"open": "18:00", "close": "08:00"}}},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "invalid_business_hours"
