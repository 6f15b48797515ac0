PROJECT = {
    "professional_id": "pro-1",
    "execution_duration": {"value": 2, "unit": "days"},
    "resources": ["m1"],
}


def seed(client, project=PROJECT):
    assert client.put("/resources/pro-1", json={"timezone": "UTC"}).status_code == 200
    assert client.put("/resources/m1", json={"blocked_dates": []}).status_code == 200
    assert client.put("/projects/proj-1", json=project).status_code == 200


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestRecords:

    def test_project_round_trip(self, client):
        seed(client)
        response = client.get("/projects/proj-1")
        assert response.status_code == 200
        assert response.json()["id"] == "proj-1"
        assert response.json()["resources"] == ["m1"]

    def test_unknown_records_are_404(self, client):
        assert client.get("/projects/missing").status_code == 404
        assert client.get("/resources/missing").status_code == 404
        assert client.get("/bookings/missing").status_code == 404

    def test_mismatched_body_id_is_rejected(self, client):
        response = client.put("/projects/proj-1", json={**PROJECT, "id": "proj-2"})
        assert response.status_code == 422

    def test_invalid_duration_is_rejected(self, client):
        response = client.put("/projects/proj-1", json={**PROJECT, "execution_duration": {"value": 2, "unit": "weeks"}})
        assert response.status_code == 422

    def test_booking_legacy_fields_are_folded(self, client):
        response = client.put("/bookings/b1", json={
            "project_id": "proj-1",
            "professional_id": "pro-1",
            "scheduled_start_date": "2026-10-19T10:00:00Z",
            "execution_end_date": "2026-10-19T13:00:00Z",
        })
        assert response.status_code == 200
        booking = client.get("/bookings/b1").json()
        assert booking["scheduled_execution_end_date"].startswith("2026-10-19T13:00:00")
        assert "execution_end_date" not in booking


    def test_resource_blocked_ranges_follow_assignment(self, client):
        seed(client)
        booking = {
            "project_id": "other",
            "professional_id": "pro-2",
            "assigned_team_members": ["m1"],
            "scheduled_start_date": "2026-10-19T10:00:00Z",
            "scheduled_execution_end_date": "2026-10-19T13:00:00Z",
        }
        assert client.put("/bookings/b1", json=booking).status_code == 200

        ranges = client.get("/resources/m1/blocked-ranges").json()
        assert [(r["booking_id"], r["reason"]) for r in ranges] == [("b1", "booking")]
        assert ranges[0]["start_date"].startswith("2026-10-19T10:00:00")

        client.put("/bookings/b1", json={**booking, "assigned_team_members": ["pro-1"]})
        assert client.get("/resources/m1/blocked-ranges").json() == []
        assert len(client.get("/resources/pro-1/blocked-ranges").json()) == 1

    def test_blocked_ranges_of_unknown_resource(self, client):
        assert client.get("/resources/missing/blocked-ranges").status_code == 404


class TestScheduling:

    def test_proposals_then_validate_then_window(self, client):
        seed(client)

        response = client.get("/projects/proj-1/schedule-proposals")
        assert response.status_code == 200
        proposals = response.json()
        assert proposals["mode"] == "days"
        start_date = proposals["earliest_proposal"]["start"][:10]

        result = client.post("/projects/proj-1/schedule/validate", json={"start_date": start_date})
        assert result.json() == {"valid": True, "reason": None}

        window = client.post("/projects/proj-1/schedule/window", json={"start_date": start_date})
        assert window.status_code == 200
        assert window.json()["scheduled_start_date"].startswith(start_date)
        assert window.json()["assigned_team_members"] == ["m1"]

    def test_primary_resource_strategy(self, client):
        seed(client)
        response = client.get("/projects/proj-1/schedule-proposals", params={"strategy": "primary_resource"})
        assert response.status_code == 200
        assert response.json()["earliest_proposal"] is not None

    def test_unknown_project(self, client):
        assert client.get("/projects/missing/schedule-proposals").status_code == 404
        assert client.post("/projects/missing/schedule/validate", json={}).status_code == 404

    def test_no_availability(self, client):
        seed(client, project={**PROJECT, "execution_duration": None})
        response = client.get("/projects/proj-1/schedule-proposals")
        assert response.status_code == 404
        assert response.json()["detail"] == "No availability"

    def test_invalid_selection(self, client):
        seed(client)
        result = client.post("/projects/proj-1/schedule/validate", json={"start_date": "soon"})
        assert result.json() == {"valid": False, "reason": "Invalid start date"}
        window = client.post("/projects/proj-1/schedule/window", json={"start_date": "soon"})
        assert window.status_code == 409
