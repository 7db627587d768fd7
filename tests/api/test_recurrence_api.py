import pytest

pytestmark = pytest.mark.unit


class TestEncode:
    async def test_rrule_only(self, client):
        response = await client.post(
            "/api/recurrence/encode",
            json={"recurrence": {"frequency": "weekly", "interval": 2, "byDay": ["MO", "WE"]}},
        )
        assert response.status_code == 200
        assert response.json()["data"] == {
            "rule": "RRULE:FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE",
            "recurrence": ["RRULE:FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE"],
            "provider_payload": None,
        }

    async def test_google_payload(self, client):
        response = await client.post(
            "/api/recurrence/encode",
            json={
                "recurrence": {"frequency": "daily", "count": 5},
                "provider_id": "google",
                "start": "2024-05-01",
            },
        )
        assert response.status_code == 200
        assert response.json()["data"]["provider_payload"] == [
            "RRULE:FREQ=DAILY;INTERVAL=1;COUNT=5"
        ]

    async def test_microsoft_payload(self, client):
        response = await client.post(
            "/api/recurrence/encode",
            json={
                "recurrence": {"frequency": "monthly", "until": "2024-12-01"},
                "provider_id": "microsoft",
                "start": "2024-05-15T09:00:00-04:00[America/New_York]",
            },
        )
        assert response.status_code == 200
        payload = response.json()["data"]["provider_payload"]
        assert payload["pattern"] == {"interval": 1, "type": "absoluteMonthly", "dayOfMonth": 15}
        assert payload["range"] == {
            "startDate": "2024-05-15",
            "type": "endDate",
            "endDate": "2024-12-01",
            "recurrenceTimeZone": "America/New_York",
        }

    async def test_provider_requires_start(self, client):
        response = await client.post(
            "/api/recurrence/encode",
            json={"recurrence": {}, "provider_id": "microsoft"},
        )
        assert response.status_code == 400
        assert "start is required" in response.json()["error"]["message"]

    async def test_unknown_provider(self, client):
        response = await client.post(
            "/api/recurrence/encode",
            json={"recurrence": {}, "provider_id": "yahoo", "start": "2024-05-01"},
        )
        assert response.status_code == 404

    async def test_invalid_recurrence_rejected(self, client):
        response = await client.post(
            "/api/recurrence/encode",
            json={"recurrence": {"frequency": "hourly"}},
        )
        assert response.status_code == 422
