from collections import Counter
from typing import Dict, List, Sequence

from app.schemas.analysis import DocumentMetrics, DocumentStructure, PageAnalysis
from app.schemas.common import ContentType, StructuralComplexity

# (minimum score, category), checked from the top.
COMPLEXITY_BUCKETS = (
    (8, StructuralComplexity.VERY_COMPLEX),
    (6, StructuralComplexity.COMPLEX),
    (4, StructuralComplexity.MODERATE),
    (2, StructuralComplexity.SIMPLE),
)


def calculate_document_metrics(
    pages: Sequence[PageAnalysis], structure: DocumentStructure
) -> DocumentMetrics:
    """Folds page analyses into document-level metrics.

    Only pages with a non-zero word count are averaged, so pages that failed
    extraction (or are pure images) do not skew the result.

    Args:
        pages (Sequence[PageAnalysis]): All page analyses of the document.
        structure (DocumentStructure): The assembled chapter/section outline.

    Returns:
        DocumentMetrics: Totals, means, histograms and structural complexity.
    """
    valid_pages = [p for p in pages if p.word_count > 0]
    complexity = assess_structural_complexity(structure, len(valid_pages))

    if not valid_pages:
        return DocumentMetrics(structural_complexity=complexity)

    total_words = sum(p.word_count for p in valid_pages)
    average_difficulty = sum(p.difficulty_score for p in valid_pages) / len(valid_pages)

    difficulty_distribution = {level: 0 for level in range(1, 6)}
    for p in valid_pages:
        difficulty_distribution[p.difficulty_level] += 1

    content_types = Counter(_content_type_value(p.content_type) for p in valid_pages)

    return DocumentMetrics(
        total_words=total_words,
        average_difficulty=round(average_difficulty, 2),
        average_words_per_page=round(total_words / len(valid_pages)),
        difficulty_distribution=difficulty_distribution,
        content_type_distribution=dict(content_types),
        structural_complexity=complexity,
    )


def _content_type_value(content_type) -> str:
    return content_type.value if isinstance(content_type, ContentType) else str(content_type)


def assess_structural_complexity(
    structure: DocumentStructure, total_pages: int
) -> StructuralComplexity:
    """Rates how elaborately a document is organized.

    Chapter count and section density each contribute up to 3 points, and
    each kind of reference material (contents, appendix, bibliography) adds 1.

    Args:
        structure (DocumentStructure): The document outline.
        total_pages (int): Number of pages the section density is measured over.

    Returns:
        StructuralComplexity: One of five ordinal categories.
    """
    score = 0

    chapter_count = len(structure.chapters)
    if chapter_count > 10:
        score += 3
    elif chapter_count > 5:
        score += 2
    elif chapter_count > 0:
        score += 1

    section_density = len(structure.sections) / total_pages if total_pages > 0 else 0
    if section_density > 0.5:
        score += 3
    elif section_density > 0.2:
        score += 2
    elif section_density > 0:
        score += 1

    score += sum(
        1
        for special in (
            structure.table_of_contents,
            structure.appendices,
            structure.bibliography,
        )
        if special
    )

    for minimum, category in COMPLEXITY_BUCKETS:
        if score >= minimum:
            return category
    return StructuralComplexity.MINIMAL


def get_dominant_content_type(distribution: Dict[str, int]) -> str:
    """Most frequent content type; ties go to the first one counted."""
    if not distribution:
        return ContentType.STANDARD_TEXT.value

    return max(distribution.items(), key=lambda item: item[1])[0]


def failed_pages(pages: Sequence[PageAnalysis]) -> List[int]:
    return [p.page_number for p in pages if p.extraction_failed]
