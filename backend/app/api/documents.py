from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlmodel import Session

from app.core.database import get_session
from app.core.exceptions import DocumentNotFoundError
from app.crud.crud import (
    StoredTextSource,
    get_document,
    get_reader_profile,
    get_unread_pages,
    mark_page_completed,
    page_to_analysis,
    save_document_analysis,
    update_document_analysis,
)
from app.models.models import Document, DocumentPage
from app.schemas.analysis import (
    DocumentAnalysis,
    DocumentEstimate,
    DocumentMetrics,
    DocumentStructure,
    PageAnalysis,
    PageCompleteRequest,
    ProcessingMetadata,
    TimeEstimate,
)
from app.schemas.sprint import PageProgress
from app.services.document_service import PdfTextSource, analyze_document
from app.services.estimation_service import (
    generate_reading_recommendations,
    generate_time_estimates,
    get_reading_speed,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


def _get_document_or_404(session: Session, document_id: int, reader_id: str) -> Document:
    try:
        return get_document(session, document_id, reader_id)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")


@router.post("/upload", status_code=201)
def upload_document(
    reader_id: str = Form(...),
    title: Optional[str] = Form(None),
    priority: int = Form(3, ge=1, le=5),
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Analyzes an uploaded PDF and stores it for the reader.

    Args:
        reader_id (str): Owner of the document.
        title (Optional[str]): Display title; defaults to the filename.
        priority (int): Rank from 1 (most important) to 5.
        file (UploadFile): The PDF.
        session (Session): The database session.

    Returns:
        Dict[str, Any]: The stored document, its metrics and reading advice.

    Raises:
        HTTPException: If the file is not a readable PDF.
    """
    content = file.file.read()
    try:
        source = PdfTextSource(content)
    except ValueError:
        raise HTTPException(status_code=400, detail="File is not a readable PDF")

    profile = get_reader_profile(session, reader_id)
    reading_speed = get_reading_speed(profile)

    with source:
        analysis = analyze_document(
            source,
            document_id=0,
            total_pages=source.page_count,
            filename=file.filename,
            reading_speed=reading_speed,
        )

    document = save_document_analysis(
        session,
        reader_id=reader_id,
        title=title or file.filename or "Untitled",
        analysis=analysis,
        priority=priority,
    )
    logger.info("document_uploaded", document_id=document.id, reader_id=reader_id)

    return {
        "document": document,
        "metrics": analysis.metrics,
        "structure": analysis.structure,
        "time_estimate": analysis.time_estimate,
        "recommendations": generate_reading_recommendations(analysis, reading_speed),
    }


@router.get("/{document_id}")
def get_document_detail(
    document_id: int, reader_id: str, session: Session = Depends(get_session)
) -> Document:
    return _get_document_or_404(session, document_id, reader_id)


@router.get("/{document_id}/pages")
def get_document_pages(
    document_id: int, reader_id: str, session: Session = Depends(get_session)
) -> List[DocumentPage]:
    document = _get_document_or_404(session, document_id, reader_id)
    return document.pages


@router.get("/{document_id}/pages/unread")
def get_document_unread_pages(
    document_id: int, reader_id: str, session: Session = Depends(get_session)
) -> List[PageProgress]:
    try:
        return get_unread_pages(session, reader_id, document_id)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Document not found")


@router.get("/{document_id}/estimate")
def get_document_estimate(
    document_id: int, reader_id: str, session: Session = Depends(get_session)
) -> DocumentEstimate:
    """Re-estimates reading time with the reader's current pace.

    Args:
        document_id (int): The document.
        reader_id (str): The reader.
        session (Session): The database session.

    Returns:
        DocumentEstimate: Personalized estimate plus recommendations.
    """
    document = _get_document_or_404(session, document_id, reader_id)
    reading_speed = get_reading_speed(get_reader_profile(session, reader_id))

    pages = [page_to_analysis(p) for p in document.pages]
    time_estimate = generate_time_estimates(pages, reading_speed)

    analysis = _stored_analysis(document, pages, time_estimate)

    return DocumentEstimate(
        document_id=document.id,
        reading_speed=reading_speed,
        time_estimate=time_estimate,
        recommendations=generate_reading_recommendations(analysis, reading_speed),
    )


def _stored_analysis(
    document: Document, pages: List[PageAnalysis], time_estimate: TimeEstimate
) -> DocumentAnalysis:
    return DocumentAnalysis(
        total_pages=document.total_pages,
        pages=pages,
        structure=DocumentStructure.model_validate(document.structure or {}),
        metrics=DocumentMetrics.model_validate(document.metrics or {}),
        time_estimate=time_estimate,
        metadata=ProcessingMetadata.model_validate(document.processing_metadata),
    )


@router.post("/{document_id}/reanalyze")
def reanalyze_document(
    document_id: int, reader_id: str, session: Session = Depends(get_session)
) -> Document:
    """Re-runs the analysis pipeline over the page text stored with the document."""
    document = _get_document_or_404(session, document_id, reader_id)
    reading_speed = get_reading_speed(get_reader_profile(session, reader_id))

    analysis = analyze_document(
        StoredTextSource(document),
        document_id=document.id,
        total_pages=document.total_pages,
        filename=document.filename,
        reading_speed=reading_speed,
    )
    return update_document_analysis(session, document, analysis)


@router.post("/{document_id}/pages/{page_number}/complete")
def complete_page(
    document_id: int,
    page_number: int,
    request: PageCompleteRequest,
    session: Session = Depends(get_session),
) -> DocumentPage:
    document = _get_document_or_404(session, document_id, request.reader_id)
    try:
        return mark_page_completed(
            session, document, page_number, request.time_spent_seconds
        )
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="Page not found")
