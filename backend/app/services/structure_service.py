import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Pattern, Sequence, Tuple

from app.schemas.analysis import (
    ChapterSpan,
    DocumentStructure,
    PageAnalysis,
    SectionSpan,
)
from app.schemas.common import ContentType

M = re.MULTILINE
I = re.IGNORECASE

# Named pattern sets; a page has the feature if any pattern in the set matches.
HEADING_PATTERNS: Dict[str, Pattern] = {
    "all_caps_line": re.compile(r"^[A-Z][A-Z \t]{5,}$", M),
    "numbered_heading": re.compile(r"^\d+\.[ \t]+[A-Z][a-zA-Z \t]+$", M),
    "chapter_marker": re.compile(r"^Chapter[ \t]+\d+", M | I),
    "section_marker": re.compile(r"^Section[ \t]+\d+", M | I),
}

BULLET_PATTERNS: Dict[str, Pattern] = {
    "symbol_bullet": re.compile(r"^[ \t]*[•·▪▫‣⁃][ \t]+", M),
    "dash_bullet": re.compile(r"^[ \t]*[-*+][ \t]+", M),
    "numbered_item": re.compile(r"^[ \t]*\d+\.[ \t]+", M),
    "lettered_item": re.compile(r"^[ \t]*[a-z]\)[ \t]+", M),
}

IMAGE_PATTERNS: Dict[str, Pattern] = {
    "figure": re.compile(r"\bFig(?:ure|\.)\s*\d+", I),
    "image": re.compile(r"\bImage\s+\d+", I),
    "diagram": re.compile(r"\bDiagram\s+\d+", I),
    "chart": re.compile(r"\bChart\s+\d+", I),
    "table": re.compile(r"\bTable\s+\d+", I),
}

MATH_PATTERNS: Dict[str, Pattern] = {
    "latex_inline": re.compile(r"\$[^$\n]+\$"),
    "latex_paren": re.compile(r"\\\(.+?\\\)", re.DOTALL),
    "latex_display": re.compile(r"\\\[.+?\\\]", re.DOTALL),
    "simple_equation": re.compile(r"\b\d+\s*[+*/=^]\s*\d+\b|\b\d+\s+-\s+\d+\b"),
    "math_symbols": re.compile(r"[∑∏∫∆∇√≤≥≠≈∞αβγδεζηθικλμνξπρστυφχψω]", I),
}

CODE_PATTERNS: Dict[str, Pattern] = {
    "fenced_block": re.compile(r"```.*?```", re.DOTALL),
    "inline_code": re.compile(r"`[^`\n]+`"),
    "function_keyword": re.compile(r"\bfunction\s+\w+\s*\("),
    "class_definition": re.compile(r"^\s*class\s+\w+\s*[:{(]", M),
    "import_statement": re.compile(r"^\s*(?:import|from)\s+[\w.]+", M),
    "def_statement": re.compile(r"^\s*def\s+\w+\s*\(", M),
}

TOC_PATTERNS: Dict[str, Pattern] = {
    "toc_heading": re.compile(r"table\s+of\s+contents", I),
    "contents_heading": re.compile(r"^\s*contents\s*$", M | I),
    "dotted_leader": re.compile(r"\.{3,}\s*\d+\s*$", M),
}

APPENDIX_PATTERNS: Dict[str, Pattern] = {
    "appendix_heading": re.compile(r"^Appendix[ \t]+[A-Z]\b", M | I),
}

BIBLIOGRAPHY_PATTERNS: Dict[str, Pattern] = {
    "bibliography_heading": re.compile(r"^\s*Bibliography\s*$", M | I),
    "references_heading": re.compile(r"^\s*References\s*$", M | I),
    "works_cited_heading": re.compile(r"^\s*Works\s+Cited\s*$", M | I),
    "numbered_citation": re.compile(r"^\s*\[\d+\]\s+[A-Z]", M),
}

# Title extractors are tried in order; each returns the title or None.
CHAPTER_TITLE_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"^Chapter[ \t]+(\d+)\b:?[ \t]*(.*)$", M | I),
    re.compile(r"^(\d+)\.[ \t]+([A-Z][a-zA-Z \t]+)$", M),
    re.compile(r"^([A-Z][A-Z \t]{10,})$", M),
)

SECTION_TITLE_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"^Section[ \t]+(\d+(?:\.\d+)*)\b:?[ \t]*(.*)$", M | I),
    re.compile(r"^(\d+\.\d+(?:\.\d+)*)\.?[ \t]+([A-Z][a-zA-Z \t]+)$", M),
)

HEAVY_MATH_WORDS = 100
ACADEMIC_PARAGRAPHS = 3
SUMMARY_WORDS = 500
MINIMAL_WORDS = 100
DENSE_PARAGRAPHS = 5


def matches_any(patterns: Dict[str, Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns.values())


@dataclass(frozen=True)
class PageFeatures:
    """Structural signals of a page used for content-type classification."""

    has_headings: bool = False
    has_bullet_points: bool = False
    has_images: bool = False
    has_equations: bool = False
    has_code: bool = False
    word_count: int = 0
    paragraph_count: int = 0


@dataclass(frozen=True)
class ContentTypeRule:
    content_type: ContentType
    applies: Callable[[PageFeatures], bool]


# Evaluated top to bottom; the first rule that applies wins.
CONTENT_TYPE_RULES: Sequence[ContentTypeRule] = (
    ContentTypeRule(ContentType.CODE_DOCUMENTATION, lambda f: f.has_code),
    ContentTypeRule(
        ContentType.MATHEMATICAL,
        lambda f: f.has_equations and f.word_count > HEAVY_MATH_WORDS,
    ),
    ContentTypeRule(
        ContentType.TECHNICAL_REFERENCE,
        lambda f: f.has_images and f.has_bullet_points,
    ),
    ContentTypeRule(
        ContentType.ACADEMIC_TEXT,
        lambda f: f.has_headings and f.paragraph_count > ACADEMIC_PARAGRAPHS,
    ),
    ContentTypeRule(
        ContentType.SUMMARY_NOTES,
        lambda f: f.has_bullet_points and f.word_count < SUMMARY_WORDS,
    ),
    ContentTypeRule(
        ContentType.MINIMAL_CONTENT, lambda f: f.word_count < MINIMAL_WORDS
    ),
    ContentTypeRule(
        ContentType.DENSE_TEXT, lambda f: f.paragraph_count > DENSE_PARAGRAPHS
    ),
)


def classify_content_type(features: PageFeatures) -> ContentType:
    for rule in CONTENT_TYPE_RULES:
        if rule.applies(features):
            return rule.content_type
    return ContentType.STANDARD_TEXT


def _first_title(patterns: Sequence[Pattern], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        groups = [g.strip() for g in match.groups() if g and g.strip()]
        # Prefer the descriptive part over the bare number
        if len(groups) > 1:
            return groups[-1]
        return groups[0] if groups else match.group(0).strip()
    return None


def extract_chapter_title(text: str) -> Optional[str]:
    """Returns the chapter title on the page, or None.

    A bare "Chapter 4" line yields "Chapter 4"; "Chapter 4: Trees" yields "Trees".
    """
    title = _first_title(CHAPTER_TITLE_PATTERNS, text)
    if title is not None and title.isdigit():
        return f"Chapter {title}"
    return title


def extract_section_title(text: str) -> Optional[str]:
    title = _first_title(SECTION_TITLE_PATTERNS, text)
    if title is not None and title.replace(".", "").isdigit():
        return f"Section {title}"
    return title


@dataclass(frozen=True)
class StructureResult:
    features: PageFeatures
    content_type: ContentType
    chapter_title: Optional[str]
    section_title: Optional[str]
    is_table_of_contents: bool
    is_appendix: bool
    is_bibliography: bool


class StructureDetector:
    """Pattern-based page role and content-type classifier."""

    def detect(self, text: str, word_count: int, paragraph_count: int) -> StructureResult:
        """Classifies a page's structural role and content type.

        Args:
            text (str): The page text.
            word_count (int): Words on the page (from the readability analyzer).
            paragraph_count (int): Paragraphs on the page.

        Returns:
            StructureResult: Flags, titles, content type and special-page kind.
        """
        features = PageFeatures(
            has_headings=matches_any(HEADING_PATTERNS, text),
            has_bullet_points=matches_any(BULLET_PATTERNS, text),
            has_images=matches_any(IMAGE_PATTERNS, text),
            has_equations=matches_any(MATH_PATTERNS, text),
            has_code=matches_any(CODE_PATTERNS, text),
            word_count=word_count,
            paragraph_count=paragraph_count,
        )

        return StructureResult(
            features=features,
            content_type=classify_content_type(features),
            chapter_title=extract_chapter_title(text),
            section_title=extract_section_title(text),
            is_table_of_contents=matches_any(TOC_PATTERNS, text),
            is_appendix=matches_any(APPENDIX_PATTERNS, text),
            is_bibliography=matches_any(BIBLIOGRAPHY_PATTERNS, text),
        )


def build_document_structure(pages: Sequence[PageAnalysis]) -> DocumentStructure:
    """Folds page analyses, in page order, into a chapter/section outline.

    A chapter runs from the page where its title appears to the page before
    the next chapter title (or the last page). A section closes before the
    next section or chapter title, whichever comes first.

    Args:
        pages (Sequence[PageAnalysis]): Page analyses; sorted here by page number.

    Returns:
        DocumentStructure: The assembled outline and special-page lists.
    """
    ordered = sorted(pages, key=lambda p: p.page_number)
    structure = DocumentStructure()
    if not ordered:
        return structure

    last_page = ordered[-1].page_number

    chapters: List[dict] = []
    sections: List[dict] = []
    current_chapter: Optional[dict] = None
    current_section: Optional[dict] = None

    for page in ordered:
        if page.chapter_title:
            if current_chapter is not None:
                current_chapter["end_page"] = page.page_number - 1
            if current_section is not None:
                current_section["end_page"] = page.page_number - 1
                current_section = None
            current_chapter = {
                "title": page.chapter_title,
                "start_page": page.page_number,
                "end_page": last_page,
                "sections": [],
            }
            chapters.append(current_chapter)

        if page.section_title:
            if current_section is not None:
                current_section["end_page"] = page.page_number - 1
            current_section = {
                "title": page.section_title,
                "start_page": page.page_number,
                "end_page": last_page,
                "chapter": current_chapter["title"] if current_chapter else None,
            }
            sections.append(current_section)
            if current_chapter is not None:
                current_chapter["sections"].append(current_section)

        if page.is_table_of_contents:
            structure.table_of_contents.append(page.page_number)
        if page.is_appendix:
            structure.appendices.append(page.page_number)
        if page.is_bibliography:
            structure.bibliography.append(page.page_number)

    structure.sections = [SectionSpan(**s) for s in sections]
    structure.chapters = [
        ChapterSpan(
            title=c["title"],
            start_page=c["start_page"],
            end_page=c["end_page"],
            sections=[SectionSpan(**s) for s in c["sections"]],
        )
        for c in chapters
    ]
    return structure
