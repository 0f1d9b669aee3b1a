"""
Answer text normalization.

Used both when an answer is stored and when it is compared against the
accepted answers, so the two must stay in step.
"""
import re

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_LEADING_ARTICLE = re.compile(r"^(the|a|an)\s+")


def normalize_answer(answer: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace and trim."""
    cleaned = _NON_WORD.sub("", answer.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def normalize_for_comparison(text: str) -> str:
    """``normalize_answer`` plus removal of one leading English article."""
    return _LEADING_ARTICLE.sub("", normalize_answer(text))


def normalize_answers(answers: dict[str, str]) -> dict[str, str]:
    return {field_id: normalize_answer(value) for field_id, value in answers.items()}
