"""
Automatic answer grading.

Pure functions only: given a question and a submitted answer, decide the
auto score and whether a human needs to look at it. Persistence lives in
``services.scoring``.
"""
import math
import re
from typing import NamedTuple, Optional

from ..models import (
    Answer,
    AnswerGrade,
    MultipleChoiceQuestion,
    NumericQuestion,
    Question,
)
from .normalize import normalize_for_comparison

# Similarity thresholds
CONFIDENT_MATCH = 0.95
PROBABLE_MATCH = 0.7
POSSIBLE_MATCH = 0.4

SUBSTRING_SIMILARITY = 0.9

_NUMBER_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class FieldGrade(NamedTuple):
    score: float
    needs_review: bool


def similarity(submitted: str, expected: str) -> float:
    """
    Confidence in [0, 1] that two free-text answers mean the same thing.

    Checks run in a fixed order on the normalized strings: exact match,
    substring containment, then shared-word ratio.
    """
    s1 = normalize_for_comparison(submitted)
    s2 = normalize_for_comparison(expected)

    if s1 == s2:
        return 1.0

    # A blank side is contained in anything, so it lands here too
    if s1 in s2 or s2 in s1:
        return SUBSTRING_SIMILARITY

    words1 = s1.split(" ")
    words2 = s2.split(" ")
    common = [word for word in words1 if word in words2]

    if common:
        return len(common) / max(len(words1), len(words2))

    return 0.0


def grade_text_field(submitted: str, correct: str, points: float) -> FieldGrade:
    """Grade one submission against a single candidate answer."""
    score = similarity(submitted, correct)

    if score >= CONFIDENT_MATCH:
        return FieldGrade(points, False)
    if score >= PROBABLE_MATCH:
        return FieldGrade(points, True)
    if score >= POSSIBLE_MATCH:
        return FieldGrade(0, True)
    return FieldGrade(0, False)


def grade_text_field_with_accepted(
    submitted: str,
    correct_answer: str,
    accepted_answers: Optional[list[str]],
    points: float,
) -> FieldGrade:
    """
    Grade against the correct answer and every accepted alternative.

    The best-matching candidate decides the grade; a confident match on any
    candidate wins immediately.
    """
    best = FieldGrade(0, False)
    highest = 0.0

    for candidate in [correct_answer, *(accepted_answers or [])]:
        score = similarity(submitted, candidate)

        if score > highest:
            highest = score
            best = grade_text_field(submitted, candidate, points)

        if score >= CONFIDENT_MATCH:
            return FieldGrade(points, False)

    return best


def parse_number(text: str) -> Optional[float]:
    """
    Read the leading number of a string ("42", " 3.5kg", "-1e3").

    Returns None when the text does not start with a number.
    """
    match = _NUMBER_PREFIX.match(text)
    if not match:
        return None
    return float(match.group(1))


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def grade_answer(question: Question, answer: Answer) -> AnswerGrade:
    """Auto-grade one answer with the strategy its question type calls for."""
    auto_score = 0
    needs_review = True

    answer_fields = getattr(question, "answer_fields", None)

    if answer_fields and answer.answers is not None:
        points_per_field = question.points / len(answer_fields)
        total = 0.0
        any_needs_review = False

        for field in answer_fields:
            result = grade_text_field_with_accepted(
                answer.answers.get(field.id, ""),
                field.correct_answer,
                field.accepted_answers,
                points_per_field,
            )
            total += result.score
            any_needs_review = any_needs_review or result.needs_review

        auto_score = round_half_up(total)
        needs_review = any_needs_review

    elif isinstance(question, MultipleChoiceQuestion):
        is_correct = normalize_for_comparison(answer.raw_answer) == normalize_for_comparison(
            question.correct_answer
        )
        auto_score = question.points if is_correct else 0
        needs_review = False

    elif isinstance(question, NumericQuestion):
        submitted = parse_number(answer.raw_answer)
        correct = parse_number(question.correct_answer)

        # Unparseable numbers are left for the host
        if submitted is not None and correct is not None:
            auto_score = question.points if submitted == correct else 0
            needs_review = False

    else:
        result = grade_text_field_with_accepted(
            answer.raw_answer,
            question.correct_answer,
            question.accepted_answers,
            question.points,
        )
        auto_score = round_half_up(result.score)
        needs_review = result.needs_review

    return AnswerGrade(
        auto_score=auto_score,
        needs_review=needs_review,
        final_score=None if needs_review else auto_score,
    )
