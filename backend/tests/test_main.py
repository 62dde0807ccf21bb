from fastapi.testclient import TestClient


def test_read_root(client: TestClient):
    """Test that the API is alive."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"status": "API is ready", "docs": "/docs"}


def test_full_reader_flow(client: TestClient, pdf_factory):
    """Tests a reader's journey from upload to a finished sprint.

    Flow: Upload PDF -> Generate sprints -> Commit -> Complete -> Check profile.
    """
    pages = [
        f"Chapter {n}: Part {n}\nThis page talks about reading.\nIt has two short lines."
        for n in range(1, 4)
    ]
    files = {"file": ("book.pdf", pdf_factory(pages), "application/pdf")}
    response = client.post("/documents/upload", files=files, data={"reader_id": "flow-reader"})
    assert response.status_code == 201
    document = response.json()["document"]
    assert document["total_pages"] == 3

    plan = client.post(
        "/sprints/generate",
        json={"reader_id": "flow-reader", "preferred_duration_minutes": 4},
    ).json()
    candidate = plan["recommended_sprint"]["candidate"]
    assert candidate["document_id"] == document["id"]
    assert (candidate["start_page"], candidate["end_page"]) == (1, 2)

    sprint = client.post(
        "/sprints/commit", json={"reader_id": "flow-reader", "candidate": candidate}
    ).json()
    result = client.patch(
        f"/sprints/{sprint['id']}/complete",
        params={"reader_id": "flow-reader"},
        json={"actual_time_seconds": 240, "pages_actually_completed": 2},
    ).json()
    assert result["performance"]["performance_level"] == "good"
    assert result["profile_update"]["xp_gained"] == 15

    # The next sprint continues where the last one stopped
    plan = client.post(
        "/sprints/generate",
        json={"reader_id": "flow-reader", "preferred_duration_minutes": 4},
    ).json()
    assert plan["recommended_sprint"]["candidate"]["start_page"] == 3

    profile = client.get("/readers/flow-reader/profile").json()
    assert profile["total_pages_read"] == 2
    assert profile["total_xp_points"] == 15
