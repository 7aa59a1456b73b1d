# tests/test_schedule_preview_api.py


def _create(client, code, link, weekdays, start, end):
    resp = client.post(
        "/subjects",
        json={
            "name": f"Subject {code}",
            "subject_code": code,
            "meeting_link": link,
            "schedule": {"weekdays": weekdays, "start_time": start, "end_time": end},
        },
    )
    assert resp.status_code == 201
    return resp.json()["id"]


def test_preview_lists_sorted_occurrences_without_persisting(client):
    later = _create(client, "LATE", "aaa-bbbb-ccc", ["Monday"], "10:00", "11:00")
    earlier = _create(client, "EARLY", "ddd-eeee-fff", ["Monday"], "08:00", "09:00")

    resp = client.get(
        "/schedule/preview",
        params={
            "window_start": "2025-11-17T00:00:00Z",
            "window_end": "2025-11-17T23:59:59Z",
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_count"] == 2
    assert [o["subject_id"] for o in body["occurrences"]] == [earlier, later]
    assert body["occurrences"][0]["meet_code"] == "ddd-eeee-fff"

    assert client.get(f"/subjects/{earlier}/sessions").json() == []


def test_preview_applies_limit(client):
    _create(client, "DAILY", "aaa-bbbb-ccc", ["Monday", "Tuesday", "Wednesday"], "08:00", "09:00")

    body = client.get(
        "/schedule/preview",
        params={
            "window_start": "2025-11-17T00:00:00Z",
            "window_end": "2025-11-23T23:59:59Z",
            "limit": 1,
        },
    ).json()
    assert body["total_count"] == 3
    assert len(body["occurrences"]) == 1
    assert body["occurrences"][0]["session_date"] == "2025-11-17"


def test_preview_rejects_inverted_window(client):
    resp = client.get(
        "/schedule/preview",
        params={
            "window_start": "2025-11-18T00:00:00Z",
            "window_end": "2025-11-17T00:00:00Z",
        },
    )
    assert resp.status_code == 400


def test_preview_rejects_non_positive_limit(client):
    assert client.get("/schedule/preview", params={"limit": 0}).status_code == 422
