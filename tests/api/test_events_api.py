import pytest

pytestmark = pytest.mark.unit

GOOGLE_EVENT = {
    "id": "g-1",
    "status": "confirmed",
    "summary": "Planning",
    "start": {"dateTime": "2024-05-01T13:00:00Z", "timeZone": "America/New_York"},
    "end": {"dateTime": "2024-05-01T14:00:00Z", "timeZone": "America/New_York"},
}

GRAPH_EVENT = {
    "id": "m-1",
    "subject": "Offsite",
    "isAllDay": True,
    "start": {"dateTime": "2024-05-01T00:00:00.0000000", "timeZone": "UTC"},
    "end": {"dateTime": "2024-05-03T00:00:00.0000000", "timeZone": "UTC"},
}


class TestNormalize:
    async def test_google_events(self, client):
        response = await client.post(
            "/api/events/normalize",
            json={
                "provider_id": "google",
                "account_id": "acct",
                "calendar_id": "primary",
                "events": [GOOGLE_EVENT, {**GOOGLE_EVENT, "id": "g-2", "status": "cancelled"}],
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["meta"] == {"provider_id": "google", "skipped": 1}
        (event,) = body["data"]
        assert event["id"] == "g-1"
        assert event["start"] == "2024-05-01T09:00:00-04:00[America/New_York]"
        assert event["all_day"] is False

    async def test_microsoft_all_day(self, client):
        response = await client.post(
            "/api/events/normalize",
            json={
                "provider_id": "Microsoft",
                "account_id": "acct",
                "calendar_id": "work",
                "events": [GRAPH_EVENT],
            },
        )
        assert response.status_code == 200
        (event,) = response.json()["data"]
        assert (event["start"], event["end"]) == ("2024-05-01", "2024-05-03")
        assert event["all_day"] is True

    async def test_malformed_payload_is_400(self, client):
        response = await client.post(
            "/api/events/normalize",
            json={
                "provider_id": "google",
                "account_id": "acct",
                "calendar_id": "primary",
                "events": [{"id": "bad", "start": {"dateTime": "nope"}, "end": {}}],
            },
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestEventBody:
    async def test_google_create_body(self, client):
        response = await client.post(
            "/api/events/body",
            json={
                "provider_id": "google",
                "event": {
                    "title": "Lunch",
                    "start": "2024-05-01T12:00:00-04:00[America/New_York]",
                    "end": "2024-05-01T13:00:00-04:00[America/New_York]",
                    "account_id": "acct",
                    "calendar_id": "primary",
                },
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["meta"] == {"provider_id": "google", "update": False}
        assert body["data"]["start"] == {
            "dateTime": "2024-05-01T16:00:00Z",
            "timeZone": "America/New_York",
        }

    async def test_microsoft_update_body(self, client):
        response = await client.post(
            "/api/events/body",
            json={
                "provider_id": "microsoft",
                "event": {
                    "id": "m-1",
                    "start": "2024-05-01",
                    "end": "2024-05-02",
                    "account_id": "acct",
                    "calendar_id": "work",
                },
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["meta"]["update"] is True
        assert body["data"]["id"] == "m-1"
        assert body["data"]["isAllDay"] is True

    async def test_mixed_boundaries_rejected(self, client):
        response = await client.post(
            "/api/events/body",
            json={
                "provider_id": "google",
                "event": {
                    "start": "2024-05-01",
                    "end": "2024-05-01T13:00:00Z",
                    "account_id": "acct",
                    "calendar_id": "primary",
                },
            },
        )
        assert response.status_code == 400
