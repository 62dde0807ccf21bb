from fastapi.testclient import TestClient

from app.models.models import Document

PDF_PAGES = [
    "Chapter 1: Getting Started\nReading plans help you finish.\nSet a goal and keep it.",
    "A second page with a few more words.\nEach line is short.",
]


def test_upload_pdf(client: TestClient, pdf_factory):
    """Test uploading a PDF stores the document and returns its analysis."""
    files = {"file": ("notes.pdf", pdf_factory(PDF_PAGES), "application/pdf")}
    data = {"reader_id": "reader-9", "title": "Notes", "priority": "2"}

    response = client.post("/documents/upload", files=files, data=data)
    assert response.status_code == 201
    body = response.json()

    document = body["document"]
    assert document["title"] == "Notes"
    assert document["reader_id"] == "reader-9"
    assert document["total_pages"] == 2
    assert document["priority"] == 2
    assert document["filename"] == "notes.pdf"

    assert body["structure"]["chapters"][0]["title"] == "Getting Started"
    assert body["metrics"]["total_words"] > 0
    assert len(body["time_estimate"]["page_estimates"]) == 2
    assert isinstance(body["recommendations"], list)

    # Pages are stored too
    response = client.get(
        f"/documents/{document['id']}/pages", params={"reader_id": "reader-9"}
    )
    assert [p["page_number"] for p in response.json()] == [1, 2]


def test_upload_defaults_title_to_filename(client: TestClient, pdf_factory):
    files = {"file": ("chapter.pdf", pdf_factory(PDF_PAGES[:1]), "application/pdf")}
    response = client.post("/documents/upload", files=files, data={"reader_id": "reader-9"})
    assert response.status_code == 201
    assert response.json()["document"]["title"] == "chapter.pdf"
    assert response.json()["document"]["priority"] == 3


def test_upload_rejects_non_pdf(client: TestClient):
    files = {"file": ("notes.pdf", b"definitely not a pdf", "application/pdf")}
    response = client.post("/documents/upload", files=files, data={"reader_id": "reader-9"})
    assert response.status_code == 400
    assert response.json()["detail"] == "File is not a readable PDF"


def test_upload_validates_form(client: TestClient, pdf_factory):
    files = {"file": ("notes.pdf", pdf_factory(PDF_PAGES), "application/pdf")}
    assert client.post("/documents/upload", files=files).status_code == 422

    files = {"file": ("notes.pdf", pdf_factory(PDF_PAGES), "application/pdf")}
    response = client.post(
        "/documents/upload", files=files, data={"reader_id": "r", "priority": "9"}
    )
    assert response.status_code == 422


def test_get_document(client: TestClient, seeded_document: Document):
    response = client.get(
        f"/documents/{seeded_document.id}", params={"reader_id": "reader-1"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Study Guide"
    assert data["total_pages"] == 6
    assert [c["title"] for c in data["structure"]["chapters"]] == ["Introduction", "Methods"]
    assert data["structure"]["table_of_contents"] == [1]


def test_documents_are_private(client: TestClient, seeded_document: Document):
    """Test that another reader cannot see the document."""
    for path in ("", "/pages", "/pages/unread", "/estimate"):
        response = client.get(
            f"/documents/{seeded_document.id}{path}", params={"reader_id": "someone-else"}
        )
        assert response.status_code == 404, path

    response = client.get("/documents/999", params={"reader_id": "reader-1"})
    assert response.status_code == 404


def test_document_pages(client: TestClient, seeded_document: Document):
    response = client.get(
        f"/documents/{seeded_document.id}/pages", params={"reader_id": "reader-1"}
    )
    pages = response.json()
    assert len(pages) == 6
    assert pages[4]["word_count"] == 0
    assert pages[4]["estimated_reading_seconds"] == 30
    assert pages[1]["chapter_title"] == "Introduction"


def test_complete_page_updates_unread(client: TestClient, seeded_document: Document):
    url = f"/documents/{seeded_document.id}"
    response = client.post(
        f"{url}/pages/2/complete", json={"reader_id": "reader-1", "time_spent_seconds": 90}
    )
    assert response.status_code == 200
    assert response.json()["is_completed"] is True
    assert response.json()["time_spent_seconds"] == 90
    assert response.json()["last_read_at"] is not None

    unread = client.get(f"{url}/pages/unread", params={"reader_id": "reader-1"}).json()
    assert [p["page_number"] for p in unread] == [1, 3, 4, 5, 6]

    response = client.post(f"{url}/pages/99/complete", json={"reader_id": "reader-1"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Page not found"


def test_document_estimate(client: TestClient, seeded_document: Document):
    response = client.get(
        f"/documents/{seeded_document.id}/estimate", params={"reader_id": "reader-1"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["document_id"] == seeded_document.id
    assert data["reading_speed"]["has_personalized_speed"] is False
    assert len(data["time_estimate"]["page_estimates"]) == 6
    assert data["time_estimate"]["total_seconds"] == seeded_document.estimated_reading_seconds
    assert data["recommendations"] == []


def test_reanalyze_keeps_progress(client: TestClient, seeded_document: Document):
    url = f"/documents/{seeded_document.id}"
    client.post(f"{url}/pages/1/complete", json={"reader_id": "reader-1"})

    response = client.post(f"{url}/reanalyze", params={"reader_id": "reader-1"})
    assert response.status_code == 200
    assert response.json()["total_pages"] == 6
    assert [c["title"] for c in response.json()["structure"]["chapters"]] == [
        "Introduction",
        "Methods",
    ]

    unread = client.get(f"{url}/pages/unread", params={"reader_id": "reader-1"}).json()
    assert 1 not in [p["page_number"] for p in unread]
