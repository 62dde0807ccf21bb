import pytest
from typing import Dict, Generator, List
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool
import fitz
import sys
import os

# Append sys.path to ensure the below imports work from tests folder
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set environment variables for testing before importing the app
os.environ["DATABASE_URL"] = "sqlite://"

from app.main import app
from app.core.database import get_session
from app.core.exceptions import TextExtractionError
from app.crud.crud import save_document_analysis
from app.models.models import Document, ReaderProfile
from app.services.document_service import analyze_document

# Create in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool
)

READER_ID = "reader-1"

SAMPLE_PAGES = {
    1: "Contents\nIntroduction .......... 2\nMethods .......... 4",
    2: (
        "Chapter 1: Introduction\n\n"
        "Reading plans help learners finish long books. "
        "A good plan breaks the work into short daily sessions. "
        "Each session covers a few pages."
    ),
    3: (
        "1.1 Background\n\n"
        "Earlier studies measured reading speed in words per minute. "
        "They found that harder text slows readers down. "
        "Technical terms such as API and JSON add extra effort."
    ),
    4: (
        "Chapter 2: Methods\n\n"
        "We tracked sessions for ten weeks. "
        "Every reader logged the pages read and the time spent."
    ),
    5: "",
    6: "References\n[1] Smith, J. Reading at scale. 2020.",
}


class FakeTextSource:
    """In-memory text source; pages listed in ``failing`` raise on read."""

    def __init__(self, pages: Dict[int, str], failing: List[int] = ()):
        self.pages = pages
        self.failing = set(failing)

    def get_page_text(self, document_id: int, page_number: int) -> str:
        if page_number in self.failing:
            raise TextExtractionError(page_number, "simulated failure")
        return self.pages.get(page_number, "")


def make_pdf(page_texts: List[str]) -> bytes:
    """Builds a small PDF with one page per text (short lines only)."""
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture(name="fake_source")
def fake_source_fixture():
    """Returns the FakeTextSource class for building per-test sources."""
    return FakeTextSource


@pytest.fixture(name="sample_pages")
def sample_pages_fixture() -> Dict[int, str]:
    return dict(SAMPLE_PAGES)


@pytest.fixture(name="pdf_factory")
def pdf_factory_fixture():
    return make_pdf


# Define a fixture to override database dependency
@pytest.fixture(name="session")
def session_fixture() -> Generator[Session, None, None]:
    """Creates a fresh in-memory database session for each test.

    Yields:
        Session: The SQLModel session connected to the test database.
    """
    # Create the tables in the test DB
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session

    # Tear down (drop tables) after test is done
    SQLModel.metadata.drop_all(engine)


# Define test client fixture
@pytest.fixture(name="client")
def client_fixture(session: Session) -> Generator[TestClient, None, None]:
    """Creates a TestClient with the database dependency overridden.

    Args:
        session (Session): The test database session.

    Yields:
        TestClient: The FastAPI test client.
    """

    # Override the get_session dependency so the app uses SQLite test database
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override

    client = TestClient(app)
    yield client

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture(name="seeded_document")
def seeded_document_fixture(session: Session) -> Document:
    """Stores a reader profile and one analyzed six-page document.

    Args:
        session (Session): The empty test database session.

    Returns:
        Document: The saved document (pages 1-6, page 5 blank).
    """
    session.add(ReaderProfile(reader_id=READER_ID))
    session.commit()

    analysis = analyze_document(
        FakeTextSource(SAMPLE_PAGES),
        document_id=0,
        total_pages=len(SAMPLE_PAGES),
        filename="study-guide.pdf",
        pause=lambda: None,
    )
    return save_document_analysis(
        session, READER_ID, "Study Guide", analysis, priority=2
    )
