import re
from dataclasses import dataclass
from typing import Dict, List

import numpy as np

# Compile regex once at module level for performance
NON_WORD_REGEX = re.compile(r"[^\w\s]")
SENTENCE_SPLIT_REGEX = re.compile(r"[.!?]+")
PARAGRAPH_SPLIT_REGEX = re.compile(r"\n\s*\n")
SILENT_SUFFIX_REGEX = re.compile(r"(?:[^laeiouy]es|ed|[^laeiouy]e)$")
VOWEL_GROUP_REGEX = re.compile(r"[aeiouy]{1,2}")
EDGE_PUNCTUATION = ".,;:!?()[]{}\"'`“”‘’"

# Tokens that look like jargon rather than prose.
TECHNICAL_PATTERNS = (
    re.compile(r"^[A-Z]{2,}s?$"),  # Acronyms (API, GPUs)
    re.compile(r"\d+\.\d+"),  # Version numbers (3.11)
    re.compile(r"[A-Za-z]\d|\d[A-Za-z]"),  # Embedded digits (x86, 4K)
    re.compile(r"[A-Za-z]+_[A-Za-z]+"),  # snake_case
    re.compile(r"[a-z]+[A-Z][A-Za-z]*"),  # camelCase
    re.compile(r"^[A-Za-z]+(?:-[A-Za-z]+)+$"),  # Hyphenated compounds
)

COMPLEX_WORD_MIN_LENGTH = 7
COMPLEX_WORD_MIN_SYLLABLES = 3


@dataclass(frozen=True)
class DifficultyFactor:
    """Maps one readability metric onto a 1-5 sub-score.

    ``bands`` holds the inclusive upper bounds of the easy, medium and hard
    ranges; values under ``floor`` score 1 and values over the hard bound
    score 5. For ``inverted`` factors a higher value means easier text and
    ``bands`` holds the inclusive lower bounds instead.
    """

    weight: float
    floor: float
    bands: tuple
    inverted: bool = False

    def sub_score(self, value: float) -> int:
        easy, medium, hard = self.bands
        if self.inverted:
            if value > self.floor:
                return 1
            if value >= easy:
                return 2
            if value >= medium:
                return 3
            if value >= hard:
                return 4
            return 5

        if value < self.floor:
            return 1
        if value <= easy:
            return 2
        if value <= medium:
            return 3
        if value <= hard:
            return 4
        return 5


DIFFICULTY_FACTORS: Dict[str, DifficultyFactor] = {
    "avg_words_per_sentence": DifficultyFactor(0.30, 1, (15, 25, 100)),
    "avg_syllables_per_word": DifficultyFactor(0.25, 1, (1.5, 2.2, 5)),
    "complex_word_percentage": DifficultyFactor(0.20, 0, (10, 20, 100)),
    "technical_term_percentage": DifficultyFactor(0.15, 0, (5, 15, 100)),
    "sentence_variety": DifficultyFactor(0.10, 1, (0.8, 0.6, 0), inverted=True),
}

# Upper bound of the score for each difficulty level.
LEVEL_THRESHOLDS = ((1.5, 1), (2.5, 2), (3.5, 3), (4.5, 4))

MIN_SCORE = 1.0
MAX_SCORE = 5.0
NEUTRAL_SCORE = 3.0


@dataclass(frozen=True)
class ReadabilityResult:
    """Lexical counts and the difficulty derived from them."""

    word_count: int
    sentence_count: int
    paragraph_count: int
    avg_words_per_sentence: float
    avg_syllables_per_word: float
    complex_word_count: int
    technical_term_count: int
    sentence_variety: float
    difficulty_score: float
    difficulty_level: int


class Analyzer:
    """Readability analyzer for English page text.

    Pure and deterministic: the same text always yields the same result.
    """

    def extract_words(self, text: str) -> List[str]:
        """Lowercased words with punctuation stripped."""
        return NON_WORD_REGEX.sub(" ", text.lower()).split()

    def extract_raw_tokens(self, text: str) -> List[str]:
        """Whitespace tokens with case and inner punctuation kept."""
        tokens = (t.strip(EDGE_PUNCTUATION) for t in text.split())
        return [t for t in tokens if t]

    def extract_sentences(self, text: str) -> List[str]:
        sentences = (s.strip() for s in SENTENCE_SPLIT_REGEX.split(text))
        return [s for s in sentences if s]

    def extract_paragraphs(self, text: str) -> List[str]:
        paragraphs = (p.strip() for p in PARAGRAPH_SPLIT_REGEX.split(text))
        return [p for p in paragraphs if p]

    def count_syllables(self, word: str) -> int:
        """Vowel-group syllable heuristic.

        Short words count as one syllable. Common silent endings ("-es",
        "-ed", trailing "e") and a leading "y" are dropped before counting.
        """
        word = word.lower()
        if len(word) <= 3:
            return 1

        word = SILENT_SUFFIX_REGEX.sub("", word)
        if word.startswith("y"):
            word = word[1:]

        groups = VOWEL_GROUP_REGEX.findall(word)
        return len(groups) if groups else 1

    def is_complex_word(self, word: str) -> bool:
        return (
            len(word) >= COMPLEX_WORD_MIN_LENGTH
            or self.count_syllables(word) >= COMPLEX_WORD_MIN_SYLLABLES
        )

    def is_technical_term(self, token: str) -> bool:
        return any(pattern.search(token) for pattern in TECHNICAL_PATTERNS)

    def sentence_variety(self, sentences: List[str]) -> float:
        """Coefficient of variation of sentence lengths, capped at 1."""
        if not sentences:
            return 0.0

        lengths = np.array([len(s.split()) for s in sentences], dtype=float)
        mean = lengths.mean()
        if mean == 0:
            return 0.0

        return float(min(1.0, lengths.std() / mean))

    def difficulty_score(self, metrics: Dict[str, float]) -> float:
        """Weighted sum of factor sub-scores, clamped to [1, 5].

        Args:
            metrics (Dict[str, float]): Metric values keyed like DIFFICULTY_FACTORS.

        Returns:
            float: The continuous difficulty score.
        """
        score = 0.0
        for name, factor in DIFFICULTY_FACTORS.items():
            score += factor.sub_score(metrics.get(name, 0.0)) * factor.weight

        return max(MIN_SCORE, min(MAX_SCORE, score))

    @staticmethod
    def score_to_level(score: float) -> int:
        for upper, level in LEVEL_THRESHOLDS:
            if score <= upper:
                return level
        return 5

    def analyze(self, text: str) -> ReadabilityResult:
        """Computes lexical metrics and difficulty for a block of text.

        Text without any words yields zero counts and a neutral (level 3)
        difficulty.

        Args:
            text (str): Raw page text, possibly empty.

        Returns:
            ReadabilityResult: Counts, averages and the difficulty score/level.
        """
        words = self.extract_words(text or "")
        word_count = len(words)

        if word_count == 0:
            return ReadabilityResult(
                word_count=0,
                sentence_count=0,
                paragraph_count=0,
                avg_words_per_sentence=0.0,
                avg_syllables_per_word=0.0,
                complex_word_count=0,
                technical_term_count=0,
                sentence_variety=0.0,
                difficulty_score=NEUTRAL_SCORE,
                difficulty_level=self.score_to_level(NEUTRAL_SCORE),
            )

        sentences = self.extract_sentences(text)
        paragraphs = self.extract_paragraphs(text)

        sentence_count = len(sentences)
        avg_words_per_sentence = word_count / sentence_count if sentence_count else 0.0
        avg_syllables = sum(self.count_syllables(w) for w in words) / word_count
        complex_count = sum(1 for w in words if self.is_complex_word(w))
        technical_count = sum(
            1 for t in self.extract_raw_tokens(text) if self.is_technical_term(t)
        )
        variety = self.sentence_variety(sentences)

        score = self.difficulty_score(
            {
                "avg_words_per_sentence": avg_words_per_sentence,
                "avg_syllables_per_word": avg_syllables,
                "complex_word_percentage": complex_count / word_count * 100,
                "technical_term_percentage": technical_count / word_count * 100,
                "sentence_variety": variety,
            }
        )

        return ReadabilityResult(
            word_count=word_count,
            sentence_count=sentence_count,
            paragraph_count=len(paragraphs),
            avg_words_per_sentence=round(avg_words_per_sentence, 1),
            avg_syllables_per_word=round(avg_syllables, 2),
            complex_word_count=complex_count,
            technical_term_count=technical_count,
            sentence_variety=round(variety, 3),
            difficulty_score=round(score, 2),
            difficulty_level=self.score_to_level(score),
        )
