from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlmodel import Session, select

from app.core.exceptions import DocumentNotFoundError, TextExtractionError
from app.models.models import Document, DocumentPage, ReaderProfile, Sprint
from app.schemas.analysis import DocumentAnalysis, PageAnalysis
from app.schemas.goals import SchedulePage
from app.schemas.sprint import PageProgress, SprintDocument
from app.services.stats_service import get_dominant_content_type


def get_reader_profile(session: Session, reader_id: str) -> ReaderProfile:
    """Loads a reader's profile, creating one with neutral defaults on first access.

    Args:
        session (Session): The database session.
        reader_id (str): The reader's identifier.

    Returns:
        ReaderProfile: The stored or newly created profile.
    """
    profile = session.get(ReaderProfile, reader_id)
    if profile is None:
        profile = ReaderProfile(reader_id=reader_id)
        session.add(profile)
        session.commit()
        session.refresh(profile)
    return profile


def save_reader_profile(session: Session, profile: ReaderProfile) -> ReaderProfile:
    session.add(profile)
    session.commit()
    session.refresh(profile)
    return profile


def get_document(session: Session, document_id: int, reader_id: str) -> Document:
    """Loads a reader's document.

    Raises:
        DocumentNotFoundError: If the document does not exist or belongs to another reader.
    """
    document = session.get(Document, document_id)
    if document is None or document.reader_id != reader_id:
        raise DocumentNotFoundError(f"Document {document_id} not found")
    return document


def get_unread_pages(
    session: Session, reader_id: str, document_id: int
) -> List[PageProgress]:
    """Pages of a document the reader has not completed, in page order."""
    document = get_document(session, document_id, reader_id)
    statement = (
        select(DocumentPage)
        .where(DocumentPage.document_id == document.id)
        .where(DocumentPage.is_completed == False)  # noqa: E712
        .order_by(DocumentPage.page_number)
    )
    return [_page_progress(p) for p in session.exec(statement).all()]


def _page_progress(page: DocumentPage) -> PageProgress:
    return PageProgress(
        page_number=page.page_number,
        is_completed=page.is_completed,
        last_read_at=page.last_read_at,
        difficulty_rating=page.difficulty_level,
        time_spent_seconds=page.time_spent_seconds,
    )


def page_to_analysis(page: DocumentPage) -> PageAnalysis:
    return PageAnalysis(
        page_number=page.page_number,
        text_content=page.text_content,
        word_count=page.word_count,
        sentence_count=page.sentence_count,
        paragraph_count=page.paragraph_count,
        avg_words_per_sentence=page.avg_words_per_sentence,
        avg_syllables_per_word=page.avg_syllables_per_word,
        complex_word_count=page.complex_word_count,
        technical_term_count=page.technical_term_count,
        difficulty_score=page.difficulty_score,
        difficulty_level=page.difficulty_level,
        content_type=page.content_type,
        has_headings=page.has_headings,
        has_bullet_points=page.has_bullet_points,
        has_images=page.has_images,
        has_equations=page.has_equations,
        has_code=page.has_code,
        chapter_title=page.chapter_title,
        section_title=page.section_title,
        is_table_of_contents=page.is_table_of_contents,
        is_appendix=page.is_appendix,
        is_bibliography=page.is_bibliography,
        extraction_failed=page.extraction_failed,
    )


def _apply_document_fields(document: Document, analysis: DocumentAnalysis) -> None:
    metrics = analysis.metrics
    document.total_pages = analysis.total_pages
    document.difficulty_level = round(metrics.average_difficulty)
    document.average_difficulty = metrics.average_difficulty
    document.estimated_reading_seconds = analysis.time_estimate.total_seconds
    document.content_type = get_dominant_content_type(metrics.content_type_distribution)
    document.structural_complexity = metrics.structural_complexity.value
    document.structure = analysis.structure.model_dump(mode="json")
    document.metrics = metrics.model_dump(mode="json")
    document.processing_metadata = analysis.metadata.model_dump(mode="json")
    document.updated_at = datetime.now(timezone.utc)


def _page_seconds(analysis: DocumentAnalysis) -> Dict[int, int]:
    return {
        e.page_number: e.estimated_seconds for e in analysis.time_estimate.page_estimates
    }


def save_document_analysis(
    session: Session,
    reader_id: str,
    title: str,
    analysis: DocumentAnalysis,
    priority: int = 3,
) -> Document:
    """Persists a document and one row per analyzed page.

    Args:
        session (Session): The database session.
        reader_id (str): Owner of the document.
        title (str): Display title.
        analysis (DocumentAnalysis): Output of the analysis pipeline.
        priority (int): Reader-assigned rank, 1 (most important) to 5.

    Returns:
        Document: The saved document with its pages.
    """
    document = Document(
        reader_id=reader_id,
        title=title,
        filename=analysis.metadata.filename,
        priority=priority,
    )
    _apply_document_fields(document, analysis)

    page_seconds = _page_seconds(analysis)
    for page in analysis.pages:
        document.pages.append(
            DocumentPage(
                **page.model_dump(mode="json"),
                source_text=page.source_text,
                estimated_reading_seconds=page_seconds.get(page.page_number, 0),
            )
        )

    session.add(document)
    session.commit()
    session.refresh(document)
    return document


def update_document_analysis(
    session: Session, document: Document, analysis: DocumentAnalysis
) -> Document:
    """Replaces a document's analysis, keeping the reader's page progress.

    Stored page text is left untouched since re-analysis reads from it.
    """
    _apply_document_fields(document, analysis)

    page_seconds = _page_seconds(analysis)
    by_number = {p.page_number: p for p in analysis.pages}
    for row in document.pages:
        page = by_number.get(row.page_number)
        if page is None:
            continue
        for field, value in page.model_dump(mode="json", exclude={"text_content"}).items():
            setattr(row, field, value)
        row.estimated_reading_seconds = page_seconds.get(row.page_number, 0)
        session.add(row)

    session.add(document)
    session.commit()
    session.refresh(document)
    return document


def load_sprint_documents(
    session: Session, reader_id: str, document_ids: Optional[Sequence[int]] = None
) -> List[SprintDocument]:
    """Builds sprint-generator inputs for a reader's documents.

    Documents are returned most important first (priority rank ascending).

    Args:
        session (Session): The database session.
        reader_id (str): The reader.
        document_ids (Optional[Sequence[int]]): Restrict to these documents.

    Returns:
        List[SprintDocument]: Documents with full page progress.
    """
    statement = select(Document).where(Document.reader_id == reader_id)
    if document_ids:
        statement = statement.where(Document.id.in_(document_ids))
    statement = statement.order_by(Document.priority, Document.id)

    return [
        SprintDocument(
            document_id=d.id,
            title=d.title,
            total_pages=d.total_pages,
            difficulty_level=d.difficulty_level,
            priority=d.priority,
            updated_at=d.updated_at,
            pages=[_page_progress(p) for p in d.pages],
        )
        for d in session.exec(statement).all()
        if d.total_pages > 0
    ]


def mark_page_completed(
    session: Session,
    document: Document,
    page_number: int,
    time_spent_seconds: int = 0,
) -> DocumentPage:
    """Marks one page as read and records the time spent on it.

    Raises:
        DocumentNotFoundError: If the document has no such page.
    """
    page = session.exec(
        select(DocumentPage)
        .where(DocumentPage.document_id == document.id)
        .where(DocumentPage.page_number == page_number)
    ).first()
    if page is None:
        raise DocumentNotFoundError(
            f"Page {page_number} not found in document {document.id}"
        )

    now = datetime.now(timezone.utc)
    page.is_completed = True
    page.time_spent_seconds += time_spent_seconds
    page.last_read_at = now
    document.updated_at = now

    session.add(page)
    session.add(document)
    session.commit()
    session.refresh(page)
    return page


def get_reader_sprints(session: Session, reader_id: str) -> List[Sprint]:
    statement = (
        select(Sprint)
        .where(Sprint.reader_id == reader_id)
        .order_by(Sprint.created_at.desc())
    )
    return list(session.exec(statement).all())


def get_schedule_pages(
    session: Session, reader_id: str, document_ids: Sequence[int]
) -> List[SchedulePage]:
    """Unread pages of the given documents, grouped by document in priority order."""
    pages: List[SchedulePage] = []
    for document in load_sprint_documents(session, reader_id, document_ids):
        completed = {p.page_number for p in document.pages if p.is_completed}
        pages.extend(
            SchedulePage(
                document_id=document.document_id,
                document_title=document.title,
                page_number=n,
            )
            for n in range(1, document.total_pages + 1)
            if n not in completed
        )
    return pages


def count_pages(
    session: Session, reader_id: str, document_ids: Sequence[int]
) -> Dict[str, int]:
    """Total and completed pages across the given documents."""
    documents = load_sprint_documents(session, reader_id, document_ids)
    return {
        "total": sum(d.total_pages for d in documents),
        "completed": sum(1 for d in documents for p in d.pages if p.is_completed),
    }


class StoredTextSource:
    """Serves page text saved with a document, for re-analysis without the file."""

    def __init__(self, document: Document):
        self._texts = {p.page_number: p for p in document.pages}

    def get_page_text(self, document_id: int, page_number: int) -> str:
        page = self._texts.get(page_number)
        if page is None or page.extraction_failed:
            raise TextExtractionError(page_number, "no stored text")
        return page.source_text


def mark_sprint_pages_completed(
    session: Session, sprint: Sprint, pages_completed: int, seconds_per_page: int
) -> int:
    """Marks the first ``pages_completed`` pages of a sprint's range as read.

    Review sprints re-read pages that are already complete; only their
    last-read time moves. Does not commit.

    Returns:
        int: Number of page rows touched.
    """
    if pages_completed <= 0:
        return 0

    last_page = min(sprint.end_page, sprint.start_page + pages_completed - 1)
    rows = session.exec(
        select(DocumentPage)
        .where(DocumentPage.document_id == sprint.document_id)
        .where(DocumentPage.page_number >= sprint.start_page)
        .where(DocumentPage.page_number <= last_page)
    ).all()

    now = datetime.now(timezone.utc)
    for row in rows:
        row.is_completed = True
        row.time_spent_seconds += seconds_per_page
        row.last_read_at = now
        session.add(row)

    document = session.get(Document, sprint.document_id)
    if document is not None:
        document.updated_at = now
        session.add(document)
    return len(rows)
