import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from functools import partial
from typing import Callable, List, Optional, Protocol

import fitz
import structlog

from app.core.config import ANALYSIS_WORKERS, BATCH_PAUSE_SECONDS, PAGE_BATCH_SIZE
from app.core.exceptions import TextExtractionError
from app.schemas.analysis import (
    DocumentAnalysis,
    PageAnalysis,
    ProcessingMetadata,
    ReadingSpeed,
)
from app.services.analyzer_service import Analyzer
from app.services.estimation_service import generate_time_estimates
from app.services.stats_service import calculate_document_metrics, failed_pages
from app.services.structure_service import StructureDetector, build_document_structure

logger = structlog.get_logger(__name__)

PROCESSING_VERSION = "1.0.0"
# Stored page text is capped to keep page records small.
TEXT_CONTENT_LIMIT = 5000


class TextSource(Protocol):
    """Supplies raw text for one page of a document."""

    def get_page_text(self, document_id: int, page_number: int) -> str:
        """Returns the page text, raising TextExtractionError if it can't be read."""
        ...


class PdfTextSource:
    """Reads page text out of an in-memory PDF with PyMuPDF."""

    def __init__(self, data: bytes):
        try:
            self._doc = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise ValueError(f"Not a readable PDF: {e}") from e
        if self._doc.page_count == 0:
            self._doc.close()
            raise ValueError("PDF has no pages")
        # PyMuPDF documents are not safe to share between threads.
        self._lock = threading.Lock()

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def get_page_text(self, document_id: int, page_number: int) -> str:
        if not 1 <= page_number <= self.page_count:
            raise TextExtractionError(page_number, "page out of range")

        with self._lock:
            try:
                return self._doc.load_page(page_number - 1).get_text()
            except RuntimeError as e:
                raise TextExtractionError(page_number, str(e)) from e

    def close(self) -> None:
        self._doc.close()

    def __enter__(self) -> "PdfTextSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def analyze_page(
    source: TextSource,
    document_id: int,
    page_number: int,
    analyzer: Analyzer,
    detector: StructureDetector,
) -> PageAnalysis:
    """Runs readability and structure analysis on one page.

    Extraction failures never propagate: the page gets a fallback analysis
    flagged as failed, and the failure is logged.

    Args:
        source (TextSource): Where page text comes from.
        document_id (int): Document the page belongs to.
        page_number (int): 1-based page number.
        analyzer (Analyzer): Readability analyzer.
        detector (StructureDetector): Structure detector.

    Returns:
        PageAnalysis: The page analysis, or a fallback.
    """
    try:
        text = source.get_page_text(document_id, page_number)
    except TextExtractionError as e:
        logger.warning(
            "page_extraction_failed",
            document_id=document_id,
            page_number=page_number,
            reason=e.reason,
        )
        return PageAnalysis.fallback(page_number, extraction_failed=True)

    readability = analyzer.analyze(text or "")
    if readability.word_count == 0:
        return PageAnalysis.fallback(page_number)

    structure = detector.detect(
        text, readability.word_count, readability.paragraph_count
    )
    features = structure.features

    return PageAnalysis(
        page_number=page_number,
        text_content=text[:TEXT_CONTENT_LIMIT],
        source_text=text,
        word_count=readability.word_count,
        sentence_count=readability.sentence_count,
        paragraph_count=readability.paragraph_count,
        avg_words_per_sentence=readability.avg_words_per_sentence,
        avg_syllables_per_word=readability.avg_syllables_per_word,
        complex_word_count=readability.complex_word_count,
        technical_term_count=readability.technical_term_count,
        difficulty_score=readability.difficulty_score,
        difficulty_level=readability.difficulty_level,
        content_type=structure.content_type,
        has_headings=features.has_headings,
        has_bullet_points=features.has_bullet_points,
        has_images=features.has_images,
        has_equations=features.has_equations,
        has_code=features.has_code,
        chapter_title=structure.chapter_title,
        section_title=structure.section_title,
        is_table_of_contents=structure.is_table_of_contents,
        is_appendix=structure.is_appendix,
        is_bibliography=structure.is_bibliography,
    )


def analyze_document(
    source: TextSource,
    document_id: int,
    total_pages: int,
    filename: Optional[str] = None,
    reading_speed: Optional[ReadingSpeed] = None,
    batch_size: int = PAGE_BATCH_SIZE,
    pause: Optional[Callable[[], None]] = None,
    max_workers: int = ANALYSIS_WORKERS,
) -> DocumentAnalysis:
    """Analyzes every page of a document and aggregates the results.

    Pages are processed in batches of ``batch_size``. ``pause`` is called
    between batches (never after the last one) so long documents don't
    monopolize the process. With ``max_workers`` > 1 the pages of each batch
    are analyzed in a thread pool; results are always merged in page order
    before the structure is assembled.

    Args:
        source (TextSource): Where page text comes from.
        document_id (int): Identifier passed through to the source.
        total_pages (int): Number of pages to analyze (pages 1..total_pages).
        filename (Optional[str]): Original filename, kept in the metadata.
        reading_speed (Optional[ReadingSpeed]): Reader pace for personalized estimates.
        batch_size (int): Pages per batch.
        pause (Optional[Callable[[], None]]): Yield point between batches.
        max_workers (int): Threads used per batch.

    Returns:
        DocumentAnalysis: Pages, structure, metrics, time estimate and metadata.

    Raises:
        ValueError: If ``batch_size`` or ``max_workers`` is below 1, or
            ``total_pages`` is negative.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")
    if total_pages < 0:
        raise ValueError("total_pages must not be negative")

    if pause is None:
        pause = partial(time.sleep, BATCH_PAUSE_SECONDS)

    analyzer = Analyzer()
    detector = StructureDetector()
    analyze = partial(
        analyze_page,
        source,
        document_id,
        analyzer=analyzer,
        detector=detector,
    )

    log = logger.bind(document_id=document_id, total_pages=total_pages)
    log.info("document_analysis_started", batch_size=batch_size, workers=max_workers)

    executor = ThreadPoolExecutor(max_workers=max_workers) if max_workers > 1 else None
    pages: List[PageAnalysis] = []
    try:
        for batch_start in range(1, total_pages + 1, batch_size):
            batch = range(batch_start, min(batch_start + batch_size, total_pages + 1))
            if executor is not None:
                pages.extend(executor.map(analyze, batch))
            else:
                pages.extend(analyze(n) for n in batch)

            if batch.stop <= total_pages:
                log.debug("batch_processed", pages_done=len(pages))
                pause()
    finally:
        if executor is not None:
            executor.shutdown(wait=True)

    pages.sort(key=lambda p: p.page_number)
    structure = build_document_structure(pages)
    metrics = calculate_document_metrics(pages, structure)
    time_estimate = generate_time_estimates(pages, reading_speed)

    metadata = ProcessingMetadata(
        filename=filename,
        processed_at=datetime.now(timezone.utc),
        processing_version=PROCESSING_VERSION,
        total_words=metrics.total_words,
        avg_difficulty=metrics.average_difficulty,
        estimated_total_reading_seconds=time_estimate.total_seconds,
        failed_pages=failed_pages(pages),
    )

    log.info(
        "document_analyzed",
        total_words=metrics.total_words,
        avg_difficulty=metrics.average_difficulty,
        estimated_seconds=time_estimate.total_seconds,
        failed_pages=len(metadata.failed_pages),
    )

    return DocumentAnalysis(
        total_pages=total_pages,
        pages=pages,
        structure=structure,
        metrics=metrics,
        time_estimate=time_estimate,
        metadata=metadata,
    )
