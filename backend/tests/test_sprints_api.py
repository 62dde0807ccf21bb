import pytest
from fastapi.testclient import TestClient

from app.models.models import Document

READER = {"reader_id": "reader-1"}


def _generate(client: TestClient, **payload):
    response = client.post("/sprints/generate", json={"reader_id": "reader-1", **payload})
    assert response.status_code == 200
    return response.json()


def test_generate_recommends_sequential_sprint(client: TestClient, seeded_document: Document):
    """Test that a new reader (120 s/page, 30 min) gets the whole six-page document."""
    plan = _generate(client)

    recommended = plan["recommended_sprint"]["candidate"]
    assert recommended["strategy"] == "sequential"
    assert recommended["document_id"] == seeded_document.id
    assert (recommended["start_page"], recommended["end_page"]) == (1, 6)
    assert recommended["estimated_time_seconds"] == 720
    assert plan["user_context"]["avg_reading_speed"] == 120


def test_generate_with_difficulty_preference(client: TestClient, seeded_document: Document):
    plan = _generate(client, difficulty_preference="medium", preferred_duration_minutes=4)
    strategies = [s["strategy"] for s in plan["sprint_suggestions"]]
    assert strategies == ["sequential", "difficulty_focused"]
    assert all(s["end_page"] - s["start_page"] + 1 <= 2 for s in plan["sprint_suggestions"])


def test_generate_without_documents(client: TestClient):
    plan = _generate(client)
    assert plan["sprint_suggestions"] == []
    assert plan["recommended_sprint"] is None


def test_sprint_lifecycle(client: TestClient, seeded_document: Document):
    """Test the flow: generate -> commit -> start -> complete -> analytics."""
    candidate = _generate(client)["recommended_sprint"]["candidate"]

    response = client.post("/sprints/commit", json={"reader_id": "reader-1", "candidate": candidate})
    assert response.status_code == 201
    sprint = response.json()
    assert sprint["status"] == "pending"
    assert sprint["strategy"] == "sequential"
    assert sprint["title"] == "📖 Study Guide: Pages 1-6"

    response = client.patch(f"/sprints/{sprint['id']}/start", params=READER)
    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"

    # Starting twice is rejected
    assert client.patch(f"/sprints/{sprint['id']}/start", params=READER).status_code == 400

    completion = {
        "actual_time_seconds": 600,
        "pages_actually_completed": 6,
        "completion_quality": 4,
        "focus_score": 0.9,
    }
    response = client.patch(f"/sprints/{sprint['id']}/complete", params=READER, json=completion)
    assert response.status_code == 200
    result = response.json()
    assert result["performance"]["time_efficiency_percentage"] == 120
    assert result["performance"]["performance_level"] == "excellent"
    assert result["outcome"]["strategy"] == "sequential"
    assert result["profile_update"]["xp_gained"] == 25
    assert result["profile_update"]["new_level"] == 1
    assert result["feedback"]["tag"] == "excellent"

    profile = client.get("/readers/reader-1/profile").json()
    assert profile["total_pages_read"] == 6
    assert profile["average_reading_speed_seconds"] == 100
    assert profile["current_streak_days"] == 1
    assert profile["focus_score_average"] == pytest.approx(0.9)

    # Every page of the sprint is now read
    unread = client.get(f"/documents/{seeded_document.id}/pages/unread", params=READER)
    assert unread.json() == []
    assert _generate(client)["recommended_sprint"] is None

    # A completed sprint cannot be completed again
    response = client.patch(f"/sprints/{sprint['id']}/complete", params=READER, json=completion)
    assert response.status_code == 400

    analytics = client.get("/sprints/analytics", params=READER).json()
    assert analytics["total_sprints"] == 1
    assert analytics["completed_sprints"] == 1
    assert analytics["completion_rate_percentage"] == 100
    assert analytics["performance_trend"] == "insufficient_data"


def test_partial_completion_marks_leading_pages(client: TestClient, seeded_document: Document):
    response = client.post(
        "/sprints",
        json={"reader_id": "reader-1", "document_id": seeded_document.id, "start_page": 1, "end_page": 4},
    )
    sprint_id = response.json()["id"]

    response = client.patch(
        f"/sprints/{sprint_id}/complete", params=READER, json={"pages_actually_completed": 2}
    )
    assert response.status_code == 200
    assert response.json()["performance"]["completion_rate_percentage"] == 50

    unread = client.get(f"/documents/{seeded_document.id}/pages/unread", params=READER).json()
    assert [p["page_number"] for p in unread] == [3, 4, 5, 6]


def test_manual_sprint(client: TestClient, seeded_document: Document):
    payload = {"reader_id": "reader-1", "document_id": seeded_document.id, "start_page": 2, "end_page": 3}
    response = client.post("/sprints", json=payload)
    assert response.status_code == 201
    sprint = response.json()
    assert sprint["title"] == "📖 Study Guide: Pages 2-3"
    assert sprint["estimated_time_seconds"] == 240
    assert sprint["strategy"] is None

    sprints = client.get("/sprints", params=READER).json()
    assert [s["id"] for s in sprints] == [sprint["id"]]


def test_manual_sprint_validation(client: TestClient, seeded_document: Document):
    base = {"reader_id": "reader-1", "document_id": seeded_document.id}

    response = client.post("/sprints", json={**base, "start_page": 4, "end_page": 2})
    assert response.status_code == 400

    response = client.post("/sprints", json={**base, "start_page": 1, "end_page": 7})
    assert response.status_code == 400

    response = client.post("/sprints", json={**base, "document_id": 999, "start_page": 1, "end_page": 2})
    assert response.status_code == 404

    # Nothing was saved
    assert client.get("/sprints", params=READER).json() == []


def test_sprints_belong_to_their_reader(client: TestClient, seeded_document: Document):
    payload = {"reader_id": "reader-1", "document_id": seeded_document.id, "start_page": 1, "end_page": 1}
    sprint_id = client.post("/sprints", json=payload).json()["id"]

    other = {"reader_id": "someone-else"}
    assert client.patch(f"/sprints/{sprint_id}/start", params=other).status_code == 404
    assert client.patch(f"/sprints/{sprint_id}/complete", params=other, json={}).status_code == 404
    assert client.patch("/sprints/999/start", params=READER).status_code == 404
