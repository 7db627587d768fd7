import pytest

pytestmark = pytest.mark.unit

OFFSITE = {
    "id": "offsite",
    "provider_id": "google",
    "account_id": "acct",
    "calendar_id": "primary",
    "title": "Offsite",
    "start": "2024-05-01",
    "end": "2024-05-03",
}

MEETING = {
    "id": "meeting",
    "provider_id": "google",
    "account_id": "acct",
    "calendar_id": "primary",
    "title": "Meeting",
    "start": "2024-05-01T09:00:00-04:00[America/New_York]",
    "end": "2024-05-01T10:00:00-04:00[America/New_York]",
}


class TestSnap:
    async def test_snap_without_day(self, client):
        response = await client.post("/api/drag/snap", json={"offset": 37, "column_height": 1440})
        assert response.status_code == 200
        assert response.json()["data"] == {
            "minutes": 37.0,
            "snapped_minutes": 30,
            "floored_minutes": 30,
            "rounded_minutes": 30,
            "start": None,
        }

    async def test_snap_with_day_uses_config_zone(self, client):
        response = await client.post(
            "/api/drag/snap",
            json={"offset": 600, "column_height": 1440, "day": "2024-05-01"},
        )
        assert response.json()["data"]["start"] == "2024-05-01T10:00:00-04:00[America/New_York]"


class TestCreate:
    async def test_commit_returns_draft(self, client):
        response = await client.post(
            "/api/drag/create",
            json={
                "day": "2024-05-01",
                "column_height": 1440,
                "start_offset": 540,
                "end_offset": 615,
            },
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["phase"] == "committed"
        assert (data["start_minutes"], data["duration_minutes"]) == (540, 75)
        draft = data["draft"]
        assert draft["id"].startswith("draft-")
        assert draft["start"] == "2024-05-01T09:00:00-04:00[America/New_York]"
        assert draft["end"] == "2024-05-01T10:15:00-04:00[America/New_York]"

    async def test_zero_distance_creates_nothing(self, client):
        response = await client.post(
            "/api/drag/create",
            json={
                "day": "2024-05-01",
                "column_height": 1440,
                "start_offset": 540,
                "end_offset": 540,
            },
        )
        data = response.json()["data"]
        assert data["phase"] == "cancelled"
        assert data["draft"] is None

    async def test_unknown_zone_is_400(self, client):
        response = await client.post(
            "/api/drag/create",
            json={
                "day": "2024-05-01",
                "time_zone": "Nowhere/Zone",
                "column_height": 1440,
                "start_offset": 0,
                "end_offset": 60,
            },
        )
        assert response.status_code == 400


class TestMove:
    async def test_all_day_move(self, client):
        response = await client.post(
            "/api/drag/move", json={"event": OFFSITE, "target_day": "2024-05-10"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["meta"] == {"event_id": "offsite"}
        assert body["data"]["moved"] is True
        assert (body["data"]["event"]["start"], body["data"]["event"]["end"]) == (
            "2024-05-10",
            "2024-05-12",
        )

    async def test_timed_move_to_hour(self, client):
        response = await client.post(
            "/api/drag/move",
            json={"event": MEETING, "target_day": "2024-05-02", "target_hours": 14.6},
        )
        event = response.json()["data"]["event"]
        assert event["start"] == "2024-05-02T14:30:00-04:00[America/New_York]"
        assert event["end"] == "2024-05-02T15:30:00-04:00[America/New_York]"

    async def test_unchanged_drop(self, client):
        response = await client.post(
            "/api/drag/move", json={"event": OFFSITE, "target_day": "2024-05-01"}
        )
        assert response.json()["data"] == {"moved": False, "event": None}
