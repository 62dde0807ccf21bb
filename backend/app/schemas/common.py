"""
Shared enumerations and small schemas used across multiple domains.
"""

from enum import Enum


class ContentType(str, Enum):
    """Dominant kind of material on a page."""

    CODE_DOCUMENTATION = "code_documentation"
    MATHEMATICAL = "mathematical"
    TECHNICAL_REFERENCE = "technical_reference"
    ACADEMIC_TEXT = "academic_text"
    SUMMARY_NOTES = "summary_notes"
    MINIMAL_CONTENT = "minimal_content"
    DENSE_TEXT = "dense_text"
    STANDARD_TEXT = "standard_text"
    UNKNOWN = "unknown"


class StructuralComplexity(str, Enum):
    """Ordinal rating of how elaborately a document is organized."""

    MINIMAL = "minimal"
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    VERY_COMPLEX = "very_complex"


class SprintStrategy(str, Enum):
    SEQUENTIAL = "sequential"
    DIFFICULTY_FOCUSED = "difficulty_focused"
    REVIEW = "review"


class DifficultyPreference(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    ADAPTIVE = "adaptive"


class SessionType(str, Enum):
    READING = "reading"
    REVIEW = "review"


class PerformanceLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_IMPROVEMENT = "needs_improvement"


class SprintStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
