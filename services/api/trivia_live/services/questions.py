"""
Question authoring. Indexes stay a contiguous 0..N-1 sequence per round.
"""
from typing import Any

import structlog
from pydantic import ValidationError

from ..errors import InvalidRequestError
from ..models import QUESTION_ADAPTER, Question
from ..storage import Storage
from .codes import generate_id
from .lookups import ensure_editable, require_game, require_question, require_round

logger = structlog.get_logger()


def build_question(data: dict[str, Any]) -> Question:
    """Validate raw question fields into the variant named by ``type``."""
    try:
        return QUESTION_ADAPTER.validate_python(data)
    except ValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        raise InvalidRequestError(f"Invalid question: {location}: {error['msg']}") from exc


async def _require_editable_round(storage: Storage, round_id: str, action: str) -> None:
    round_obj = await require_round(storage, round_id)
    game = await require_game(storage, round_obj.game_id)
    ensure_editable(game, action)


async def create_question(storage: Storage, round_id: str, fields: dict[str, Any]) -> Question:
    """Append a question to the end of a round."""
    await _require_editable_round(storage, round_id, "add question")

    existing = await storage.get_questions(round_id)
    question = build_question({
        **fields,
        "question_id": generate_id("question_"),
        "round_id": round_id,
        "index_in_round": len(existing),
    })
    return await storage.add_question(question)


async def get_questions_for_round(storage: Storage, round_id: str) -> list[Question]:
    return await storage.get_questions(round_id)


async def get_question(storage: Storage, question_id: str) -> Question:
    return await require_question(storage, question_id)


async def update_question(storage: Storage, question_id: str, changes: dict[str, Any]) -> Question:
    """Apply changes and revalidate, which may switch the question's type."""
    question = await require_question(storage, question_id)
    await _require_editable_round(storage, question.round_id, "edit question")

    if not changes:
        return question

    updated = build_question({
        **question.model_dump(by_alias=False),
        **changes,
        "question_id": question.question_id,
        "round_id": question.round_id,
        "index_in_round": question.index_in_round,
    })
    return await storage.put_question(updated)


async def reindex_questions(storage: Storage, round_id: str) -> None:
    """Close gaps in question indexes, keeping the current order."""
    questions = await storage.get_questions(round_id)
    indexes = {
        q.question_id: position
        for position, q in enumerate(questions)
        if q.index_in_round != position
    }
    if indexes:
        await storage.set_question_indexes(indexes)


async def delete_question(storage: Storage, question_id: str) -> None:
    question = await require_question(storage, question_id)
    await _require_editable_round(storage, question.round_id, "delete question")

    await storage.delete_question(question_id)
    await reindex_questions(storage, question.round_id)
    logger.info("question deleted", question_id=question_id, round_id=question.round_id)


async def reorder_questions(
    storage: Storage, round_id: str, question_ids: list[str]
) -> list[Question]:
    """Reindex questions to follow ``question_ids``, which must list each one once."""
    await _require_editable_round(storage, round_id, "reorder questions")

    existing = {q.question_id for q in await storage.get_questions(round_id)}
    if len(question_ids) != len(existing) or set(question_ids) != existing:
        raise InvalidRequestError("Question order must list every question in the round exactly once")

    await storage.set_question_indexes(
        {question_id: position for position, question_id in enumerate(question_ids)}
    )
    return await storage.get_questions(round_id)


async def duplicate_question(storage: Storage, question_id: str) -> Question:
    """Copy a question to the end of its round."""
    question = await require_question(storage, question_id)
    await _require_editable_round(storage, question.round_id, "duplicate question")

    existing = await storage.get_questions(question.round_id)
    next_index = max((q.index_in_round for q in existing), default=-1) + 1

    return await storage.add_question(question.model_copy(update={
        "question_id": generate_id("question_"),
        "index_in_round": next_index,
        "prompt": f"{question.prompt} (Copy)",
        "finalized_at": None,
    }))
