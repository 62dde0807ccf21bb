"""
Pydantic schemas for page- and document-level analysis results.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import ContentType, StructuralComplexity


class PageAnalysis(BaseModel):
    """Readability and structure analysis of a single page.

    A page whose text is empty or could not be extracted is still represented,
    with zero counts and a medium difficulty (see ``PageAnalysis.fallback``).
    """

    model_config = ConfigDict(frozen=True)

    page_number: int = Field(ge=1)
    text_content: str = ""
    source_text: str = Field(default="", exclude=True, repr=False)

    # Lexical counts
    word_count: int = 0
    sentence_count: int = 0
    paragraph_count: int = 0
    avg_words_per_sentence: float = 0.0
    avg_syllables_per_word: float = 0.0
    complex_word_count: int = 0
    technical_term_count: int = 0

    # Difficulty
    difficulty_score: float = Field(default=3.0, ge=1.0, le=5.0)
    difficulty_level: int = Field(default=3, ge=1, le=5)

    # Structure
    content_type: ContentType = ContentType.UNKNOWN
    has_headings: bool = False
    has_bullet_points: bool = False
    has_images: bool = False
    has_equations: bool = False
    has_code: bool = False
    chapter_title: Optional[str] = None
    section_title: Optional[str] = None

    # Special page classification
    is_table_of_contents: bool = False
    is_appendix: bool = False
    is_bibliography: bool = False

    extraction_failed: bool = False

    @classmethod
    def fallback(cls, page_number: int, extraction_failed: bool = False) -> "PageAnalysis":
        """Well-defined analysis for an empty or unreadable page."""
        return cls(page_number=page_number, extraction_failed=extraction_failed)


class SectionSpan(BaseModel):
    title: str
    start_page: int
    end_page: int
    chapter: Optional[str] = None


class ChapterSpan(BaseModel):
    title: str
    start_page: int
    end_page: int
    sections: List[SectionSpan] = Field(default_factory=list)


class DocumentStructure(BaseModel):
    """Chapter/section outline and special pages of a document."""

    chapters: List[ChapterSpan] = Field(default_factory=list)
    sections: List[SectionSpan] = Field(default_factory=list)
    table_of_contents: List[int] = Field(default_factory=list)
    appendices: List[int] = Field(default_factory=list)
    bibliography: List[int] = Field(default_factory=list)


class DocumentMetrics(BaseModel):
    """Document-level aggregate of all valid (non-empty) pages."""

    total_words: int = 0
    average_difficulty: float = 3.0
    average_words_per_page: int = 0
    difficulty_distribution: Dict[int, int] = Field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    )
    content_type_distribution: Dict[str, int] = Field(default_factory=dict)
    structural_complexity: StructuralComplexity = StructuralComplexity.MINIMAL


class PageTimeEstimate(BaseModel):
    page_number: int
    estimated_seconds: int = Field(ge=30, le=1800)
    difficulty_level: int
    word_count: int


class TimeEstimate(BaseModel):
    """Reading time estimate for a whole document."""

    total_seconds: int = 0
    page_estimates: List[PageTimeEstimate] = Field(default_factory=list)
    difficulty_based_totals: Dict[int, int] = Field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    )
    average_seconds_per_page: int = 0
    personalized: bool = False
    confidence: float = 0.0


class ReadingSpeed(BaseModel):
    """A reader's pace as used by the time estimator."""

    has_personalized_speed: bool = False
    avg_seconds_per_page: float
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ProcessingMetadata(BaseModel):
    filename: Optional[str] = None
    processed_at: datetime
    processing_version: str
    total_words: int
    avg_difficulty: float
    estimated_total_reading_seconds: int
    failed_pages: List[int] = Field(default_factory=list)


class DocumentAnalysis(BaseModel):
    """Everything the analysis pipeline produces for one document."""

    total_pages: int
    pages: List[PageAnalysis]
    structure: DocumentStructure
    metrics: DocumentMetrics
    time_estimate: TimeEstimate
    metadata: ProcessingMetadata


class ReadingRecommendation(BaseModel):
    type: str
    priority: str
    title: str
    message: str
    actionable: bool
    suggested_session_seconds: Optional[int] = None
    suggested_sessions: Optional[int] = None


class DocumentEstimate(BaseModel):
    """Reader-specific time estimate and advice for a stored document."""

    document_id: int
    reading_speed: ReadingSpeed
    time_estimate: TimeEstimate
    recommendations: List[ReadingRecommendation] = Field(default_factory=list)


class PageCompleteRequest(BaseModel):
    reader_id: str
    time_spent_seconds: int = Field(default=0, ge=0)
