"""
Advisor response validation and quality scoring.

Pure, deterministic helpers: no I/O, no clock. The service layer uses
`validate_response_text` as the hard gate on submission and
`calculate_response_quality` for the stored quality score; the remaining
validators only add warnings and suggestions for the response form.
"""

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from app.features.advisor_feedback.domain.models import (
    AdvisorConfidenceContext,
    AdvisorObservationPeriod,
)

MIN_WORD_COUNT = 8
MIN_CHARACTER_COUNT = 40
MAX_WORD_COUNT = 500
MIN_EXAMPLE_LENGTH = 10

# Quality curve: length saturates around 75 words
LENGTH_WEIGHT = 0.4
LENGTH_SATURATION_WORDS = 25.0
MARKER_WEIGHT = 0.06
MARKER_CAP = 0.3
EXAMPLE_BONUS = 0.1
QUANTITY_WEIGHT = 0.05
QUANTITY_CAP = 0.2
TWO_SENTENCE_BONUS = 0.1
MULTI_SENTENCE_BONUS = 0.2
VAGUE_PENALTY = 0.05
VAGUE_PENALTY_CAP = 0.2

SPECIFICITY_MARKERS = tuple(
    re.compile(pattern)
    for pattern in (
        r"\bfor example\b",
        r"\bfor instance\b",
        r"\be\.g\.",
        r"\bspecifically\b",
        r"\bin particular\b",
        r"\bi (?:have |'ve )?(?:observed|noticed|seen)\b",
        r"\bwhen they\b",
        r"\bduring\b",
        r"\bsituation\b",
        r"\bproject\b",
        r"\binstance\b",
        r"\bdemonstrat\w*",
        r"\bshowed\b",
        r"\bability to\b",
        r"\bskilled at\b",
        r"\bstrength in\b",
        r"\bled\b",
        r"\bdelivered\b",
    )
) + tuple(
    re.compile(rf"\b{verb}\b")
    for verb in (
        "shipped",
        "launched",
        "built",
        "rebuilt",
        "rewrote",
        "cut",
        "reduced",
        "grew",
        "increased",
        "improved",
        "designed",
        "migrated",
        "automated",
        "negotiated",
        "mentored",
        "resolved",
    )
)

EXAMPLE_PHRASING = re.compile(r"\b(?:for example|for instance|such as|e\.g\.)")

# 41%, 3.5, 1,200, the 3 in "Q3"
QUANTITY_PATTERN = re.compile(r"\d+(?:[.,]\d+)*%?")

VAGUE_PHRASES = tuple(
    re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)")
    for phrase in (
        "good worker",
        "nice person",
        "works hard",
        "very good",
        "no comment",
        "n/a",
        "not sure",
        "dont know",
        "don't know",
        "idk",
        "unsure",
        "seems like",
    )
)

VAGUE_EXAMPLE_PHRASES = (
    "always does well",
    "good at everything",
    "works hard",
    "very professional",
    "nice to work with",
)

US_SPELLINGS = {
    "organize": "organise",
    "realize": "realise",
    "analyze": "analyse",
    "color": "colour",
    "honor": "honour",
    "center": "centre",
    "theater": "theatre",
}

SENTENCE_SPLIT = re.compile(r"[.!?]+(?:\s+|$)")


@dataclass(slots=True)
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_suggestions(self) -> bool:
        return bool(self.suggestions)

    @property
    def has_feedback(self) -> bool:
        return self.has_warnings or self.has_suggestions

    def merge(self, other: "ValidationResult") -> None:
        self.is_valid = self.is_valid and other.is_valid
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.suggestions.extend(other.suggestions)


def _word_count(text: str) -> int:
    return len(text.split())


def _sentence_count(text: str) -> int:
    # Fragments under three words ("e.g", initials) are not sentences
    return sum(1 for part in SENTENCE_SPLIT.split(text) if len(part.split()) >= 3)


def validate_response_text(text: str) -> ValidationResult:
    """
    Hard gate for one free-text answer.

    Rejects empty text and anything under 8 words or 40 characters
    ("Good worker" fails). Long answers pass with a warning.
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return ValidationResult(is_valid=False, errors=["Please provide a response to this question"])

    word_count = _word_count(trimmed)
    if word_count < MIN_WORD_COUNT or len(trimmed) < MIN_CHARACTER_COUNT:
        return ValidationResult(
            is_valid=False,
            errors=[
                f"Please provide a more detailed response "
                f"(at least {MIN_WORD_COUNT} words and {MIN_CHARACTER_COUNT} characters)"
            ],
        )

    result = ValidationResult(is_valid=True)

    if word_count > MAX_WORD_COUNT:
        result.warnings.append(
            f"Your response is quite long ({word_count} words). "
            "Consider focusing on the most important points."
        )

    quality = calculate_response_quality(trimmed)
    if quality < 0.3:
        result.warnings.append(
            "Your response seems quite brief. Adding specific examples would make it more valuable."
        )
        result.suggestions.append("Try including concrete situations or examples you've observed.")
    elif quality < 0.6:
        result.suggestions.append(
            "Consider adding more specific details or examples to strengthen your response."
        )

    lowered = trimmed.lower()
    if any(pattern.search(lowered) for pattern in VAGUE_PHRASES):
        result.suggestions.append(
            "Consider providing more specific details rather than general descriptions."
        )

    result.suggestions.extend(check_spelling_conventions(trimmed))
    return result


def calculate_response_quality(text: str) -> float:
    """
    Score an answer in [0, 1].

    Components:
        length      0.4 * (1 - e^(-words/25)), diminishing returns
        markers     +0.06 per distinct specificity marker or action verb, capped at 0.3
        example     +0.1 for explicit example phrasing
        quantities  +0.05 per distinct number or percentage, capped at 0.2
        structure   +0.1 for two sentences, +0.2 for three or more
        vague       -0.05 per vague phrase, capped at -0.2
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return 0.0

    lowered = trimmed.lower()
    score = LENGTH_WEIGHT * (1.0 - math.exp(-_word_count(trimmed) / LENGTH_SATURATION_WORDS))

    markers = sum(1 for pattern in SPECIFICITY_MARKERS if pattern.search(lowered))
    score += min(MARKER_CAP, markers * MARKER_WEIGHT)

    if EXAMPLE_PHRASING.search(lowered):
        score += EXAMPLE_BONUS

    quantities = set(QUANTITY_PATTERN.findall(lowered))
    score += min(QUANTITY_CAP, len(quantities) * QUANTITY_WEIGHT)

    sentences = _sentence_count(trimmed)
    if sentences >= 3:
        score += MULTI_SENTENCE_BONUS
    elif sentences == 2:
        score += TWO_SENTENCE_BONUS

    vague = sum(1 for pattern in VAGUE_PHRASES if pattern.search(lowered))
    score -= min(VAGUE_PENALTY_CAP, vague * VAGUE_PENALTY)

    return max(0.0, min(1.0, score))


def validate_confidence_level(level: int) -> ValidationResult:
    if level < 1 or level > 5:
        return ValidationResult(is_valid=False, errors=["Confidence level must be between 1 and 5"])

    result = ValidationResult(is_valid=True)
    if level <= 2:
        result.warnings.append(
            "Low confidence level - consider if you have enough information to provide meaningful feedback."
        )
        result.suggestions.append(
            "If you're unsure about your assessment, it's better to be honest about your limited observations."
        )
    return result


def validate_specific_examples(examples: Iterable[str]) -> ValidationResult:
    """Examples are optional; this only ever warns or suggests."""
    result = ValidationResult(is_valid=True)
    usable = [example.strip() for example in examples if example and example.strip()]

    if not usable:
        result.suggestions.append("Adding specific examples would make your feedback more valuable.")
        return result

    if any(len(example) < MIN_EXAMPLE_LENGTH for example in usable):
        result.warnings.append("One or more examples seem quite brief - more detail would be helpful.")

    if any(phrase in example.lower() for example in usable for phrase in VAGUE_EXAMPLE_PHRASES):
        result.suggestions.append(
            "Try to make your examples more specific - describe particular situations or achievements."
        )

    return result


def validate_context_consistency(
    confidence_level: int | None,
    observation_period: AdvisorObservationPeriod,
    confidence_context: AdvisorConfidenceContext,
    has_examples: bool,
) -> ValidationResult:
    """Flag answers whose stated confidence does not match how long the advisor has observed."""
    result = ValidationResult(is_valid=True)

    if observation_period == AdvisorObservationPeriod.LESS_THAN_MONTH:
        if confidence_context in (
            AdvisorConfidenceContext.VERY_CONFIDENT,
            AdvisorConfidenceContext.CONFIDENT,
        ):
            result.warnings.append(
                "High confidence with limited observation time - ensure your assessment is based on solid evidence."
            )
        if not has_examples:
            result.suggestions.append(
                "With limited observation time, specific examples would strengthen your feedback."
            )

    if confidence_level is not None:
        if confidence_level >= 4 and confidence_context == AdvisorConfidenceContext.UNCERTAIN:
            result.warnings.append("High confidence rating conflicts with uncertain confidence context.")
        if confidence_level <= 2 and confidence_context == AdvisorConfidenceContext.VERY_CONFIDENT:
            result.warnings.append("Low confidence rating conflicts with very confident context.")

    if observation_period == AdvisorObservationPeriod.MORE_THAN_THREE_YEARS and not has_examples:
        result.suggestions.append(
            "With extensive observation time, you likely have great examples to share."
        )

    return result


def validate_response(
    question_id: str,
    response: str,
    observation_period: AdvisorObservationPeriod,
    confidence_context: AdvisorConfidenceContext,
    confidence_level: int | None = None,
    specific_examples: list[str] | None = None,
) -> ValidationResult:
    """Run every validator for one question's answer."""
    result = validate_response_text(response)

    if confidence_level is not None:
        result.merge(validate_confidence_level(confidence_level))

    if specific_examples:
        result.merge(validate_specific_examples(specific_examples))

    result.merge(
        validate_context_consistency(
            confidence_level=confidence_level,
            observation_period=observation_period,
            confidence_context=confidence_context,
            has_examples=bool(specific_examples),
        )
    )

    # Prefix errors so an aggregated submission error list stays readable
    result.errors = [f"{question_id}: {error}" for error in result.errors]
    return result


def check_spelling_conventions(text: str) -> list[str]:
    """Suggest Australian spellings for common US variants."""
    lowered = text.lower()
    return [
        f'Consider using Australian spelling: "{preferred}" instead of "{variant}"'
        for variant, preferred in US_SPELLINGS.items()
        if re.search(rf"\b{variant}", lowered)
    ]


def generate_quality_feedback(result: ValidationResult, quality_score: float) -> str:
    if not result.is_valid:
        return "Please address the required fields before submitting."
    if quality_score >= 0.8:
        return "Excellent response! Your detailed feedback will be very valuable."
    if quality_score >= 0.6:
        return "Good response. Consider adding more specific examples if possible."
    if quality_score >= 0.4:
        return "Reasonable response. More detail and examples would strengthen your feedback."
    return "Your response could benefit from more detail and specific examples."
