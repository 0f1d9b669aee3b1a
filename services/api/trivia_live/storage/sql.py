"""
SQL-based storage implementation using SQLAlchemy.

Works with both SQLite (dev) and PostgreSQL (production). Each public method
runs in its own transaction; races on unique keys are settled by table
constraints and conditional updates rather than by locks.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.connection import get_db_session_context
from ..db.models import AnswerModel, GameModel, QuestionModel, RoundModel, TeamModel
from ..models import (
    QUESTION_ADAPTER,
    Answer,
    AnswerGrade,
    Game,
    GameState,
    Question,
    Round,
    Team,
)
from .base import Storage


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; everything we store is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLStorage(Storage):
    """
    SQL-based storage using SQLAlchemy async sessions.

    This implementation works with any SQLAlchemy-supported database.
    """

    # ========================================================================
    # Helper methods
    # ========================================================================

    def _game_model_to_pydantic(self, model: GameModel) -> Game:
        return Game(
            game_id=model.id,
            join_code=model.join_code,
            title=model.title,
            description=model.description,
            state=model.state,
            current_round_id=model.current_round_id,
            current_question_index=model.current_question_index,
            is_archived=model.is_archived,
            is_lobby_locked=model.is_lobby_locked,
            max_teams=model.max_teams,
            created_at=_aware(model.created_at),
        )

    def _team_model_to_pydantic(self, model: TeamModel) -> Team:
        return Team(
            team_id=model.id,
            game_id=model.game_id,
            name=model.name,
            total_score=model.total_score,
            created_at=_aware(model.created_at),
        )

    def _round_model_to_pydantic(self, model: RoundModel) -> Round:
        return Round(
            round_id=model.id,
            game_id=model.game_id,
            title=model.title,
            round_number=model.round_number,
            type=model.type,
        )

    def _question_model_to_pydantic(self, model: QuestionModel) -> Question:
        # The adapter picks the variant from ``type`` and ignores the
        # columns that variant does not have
        return QUESTION_ADAPTER.validate_python({
            "question_id": model.id,
            "round_id": model.round_id,
            "index_in_round": model.index_in_round,
            "prompt": model.prompt,
            "type": model.type,
            "points": model.points,
            "correct_answer": model.correct_answer,
            "accepted_answers": model.accepted_answers or [],
            "options": model.options or [],
            "answer_fields": model.answer_fields or [],
            "media_url": model.media_url,
            "media_type": model.media_type,
            "finalized_at": _aware(model.finalized_at),
        })

    def _apply_question(self, model: QuestionModel, question: Question) -> None:
        model.round_id = question.round_id
        model.index_in_round = question.index_in_round
        model.prompt = question.prompt
        model.type = question.type
        model.points = question.points
        model.correct_answer = question.correct_answer
        model.accepted_answers = getattr(question, "accepted_answers", None)
        model.options = getattr(question, "options", None)
        fields = getattr(question, "answer_fields", None)
        model.answer_fields = [f.model_dump(by_alias=False) for f in fields] if fields else None
        model.media_url = getattr(question, "media_url", None)
        model.media_type = getattr(question, "media_type", None)
        model.finalized_at = question.finalized_at

    def _answer_model_to_pydantic(self, model: AnswerModel) -> Answer:
        return Answer(
            answer_id=model.id,
            question_id=model.question_id,
            team_id=model.team_id,
            raw_answer=model.raw_answer,
            normalized_answer=model.normalized_answer,
            answers=model.answers,
            normalized_answers=model.normalized_answers,
            auto_score=model.auto_score,
            needs_review=model.needs_review,
            final_score=model.final_score,
            submitted_at=_aware(model.submitted_at),
        )

    @staticmethod
    def _game_columns(changes: dict[str, Any]) -> dict[str, Any]:
        return {("id" if key == "game_id" else key): value for key, value in changes.items()}

    @staticmethod
    def _question_ids_for_game(game_id: str):
        return (
            select(QuestionModel.id)
            .join(RoundModel, QuestionModel.round_id == RoundModel.id)
            .where(RoundModel.game_id == game_id)
        )

    async def _delete_questions(self, db: AsyncSession, question_ids) -> None:
        await db.execute(delete(AnswerModel).where(AnswerModel.question_id.in_(question_ids)))
        await db.execute(delete(QuestionModel).where(QuestionModel.id.in_(question_ids)))

    # ========================================================================
    # Games
    # ========================================================================

    async def create_game(self, game: Game) -> Optional[Game]:
        try:
            async with get_db_session_context() as db:
                model = GameModel(
                    id=game.game_id,
                    join_code=game.join_code,
                    title=game.title,
                    description=game.description,
                    state=game.state,
                    current_round_id=game.current_round_id,
                    current_question_index=game.current_question_index,
                    is_archived=game.is_archived,
                    is_lobby_locked=game.is_lobby_locked,
                    max_teams=game.max_teams,
                    created_at=game.created_at,
                )
                db.add(model)
                await db.flush()
                return self._game_model_to_pydantic(model)
        except IntegrityError:
            # Join code taken between the existence check and the insert
            return None

    async def get_game(self, game_id: str) -> Optional[Game]:
        async with get_db_session_context() as db:
            model = await db.get(GameModel, game_id)
            return self._game_model_to_pydantic(model) if model else None

    async def get_game_by_join_code(self, join_code: str) -> Optional[Game]:
        async with get_db_session_context() as db:
            result = await db.execute(select(GameModel).where(GameModel.join_code == join_code))
            model = result.scalar_one_or_none()
            return self._game_model_to_pydantic(model) if model else None

    async def join_code_exists(self, join_code: str) -> bool:
        async with get_db_session_context() as db:
            result = await db.execute(
                select(GameModel.id).where(GameModel.join_code == join_code)
            )
            return result.scalar_one_or_none() is not None

    async def list_games(self, include_archived: bool = False) -> list[Game]:
        async with get_db_session_context() as db:
            query = select(GameModel).order_by(GameModel.created_at.desc())
            if not include_archived:
                query = query.where(GameModel.is_archived.is_(False))
            result = await db.execute(query)
            return [self._game_model_to_pydantic(m) for m in result.scalars().all()]

    async def update_game(self, game_id: str, **changes: Any) -> Optional[Game]:
        async with get_db_session_context() as db:
            model = await db.get(GameModel, game_id)
            if model is None:
                return None
            for column, value in self._game_columns(changes).items():
                setattr(model, column, value)
            await db.flush()
            return self._game_model_to_pydantic(model)

    async def transition_game(
        self, game_id: str, expected_state: GameState, **changes: Any
    ) -> Optional[Game]:
        async with get_db_session_context() as db:
            result = await db.execute(
                update(GameModel)
                .where(GameModel.id == game_id, GameModel.state == expected_state)
                .values(**self._game_columns(changes))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None
            model = await db.get(GameModel, game_id, populate_existing=True)
            return self._game_model_to_pydantic(model)

    async def delete_game(self, game_id: str) -> None:
        async with get_db_session_context() as db:
            await self._delete_questions(db, self._question_ids_for_game(game_id))
            await db.execute(delete(RoundModel).where(RoundModel.game_id == game_id))
            team_ids = select(TeamModel.id).where(TeamModel.game_id == game_id)
            await db.execute(delete(AnswerModel).where(AnswerModel.team_id.in_(team_ids)))
            await db.execute(delete(TeamModel).where(TeamModel.game_id == game_id))
            await db.execute(delete(GameModel).where(GameModel.id == game_id))

    async def reset_game(self, game_id: str, preserve_teams: bool) -> Optional[Game]:
        async with get_db_session_context() as db:
            model = await db.get(GameModel, game_id)
            if model is None:
                return None

            question_ids = self._question_ids_for_game(game_id)
            await db.execute(delete(AnswerModel).where(AnswerModel.question_id.in_(question_ids)))
            await db.execute(
                update(QuestionModel)
                .where(QuestionModel.id.in_(question_ids))
                .values(finalized_at=None)
                .execution_options(synchronize_session=False)
            )

            if preserve_teams:
                await db.execute(
                    update(TeamModel)
                    .where(TeamModel.game_id == game_id)
                    .values(total_score=0)
                    .execution_options(synchronize_session=False)
                )
            else:
                team_ids = select(TeamModel.id).where(TeamModel.game_id == game_id)
                await db.execute(delete(AnswerModel).where(AnswerModel.team_id.in_(team_ids)))
                await db.execute(delete(TeamModel).where(TeamModel.game_id == game_id))

            model.state = "lobby"
            model.current_round_id = None
            model.current_question_index = None
            await db.flush()
            return self._game_model_to_pydantic(model)

    # ========================================================================
    # Teams
    # ========================================================================

    async def add_team(self, team: Team) -> Optional[Team]:
        try:
            async with get_db_session_context() as db:
                model = TeamModel(
                    id=team.team_id,
                    game_id=team.game_id,
                    name=team.name,
                    name_key=team.name.lower(),
                    total_score=team.total_score,
                    created_at=team.created_at,
                )
                db.add(model)
                await db.flush()
                return self._team_model_to_pydantic(model)
        except IntegrityError:
            return None

    async def get_team(self, team_id: str) -> Optional[Team]:
        async with get_db_session_context() as db:
            model = await db.get(TeamModel, team_id)
            return self._team_model_to_pydantic(model) if model else None

    async def get_teams(self, game_id: str) -> list[Team]:
        async with get_db_session_context() as db:
            result = await db.execute(
                select(TeamModel)
                .where(TeamModel.game_id == game_id)
                .order_by(TeamModel.created_at)
            )
            return [self._team_model_to_pydantic(m) for m in result.scalars().all()]

    async def delete_team(self, team_id: str) -> None:
        async with get_db_session_context() as db:
            await db.execute(delete(AnswerModel).where(AnswerModel.team_id == team_id))
            await db.execute(delete(TeamModel).where(TeamModel.id == team_id))

    # ========================================================================
    # Rounds
    # ========================================================================

    async def add_round(self, round_obj: Round) -> Round:
        async with get_db_session_context() as db:
            model = RoundModel(
                id=round_obj.round_id,
                game_id=round_obj.game_id,
                title=round_obj.title,
                round_number=round_obj.round_number,
                type=round_obj.type,
            )
            db.add(model)
            await db.flush()
            return self._round_model_to_pydantic(model)

    async def get_round(self, round_id: str) -> Optional[Round]:
        async with get_db_session_context() as db:
            model = await db.get(RoundModel, round_id)
            return self._round_model_to_pydantic(model) if model else None

    async def get_rounds(self, game_id: str) -> list[Round]:
        async with get_db_session_context() as db:
            result = await db.execute(
                select(RoundModel)
                .where(RoundModel.game_id == game_id)
                .order_by(RoundModel.round_number)
            )
            return [self._round_model_to_pydantic(m) for m in result.scalars().all()]

    async def update_round(self, round_id: str, **changes: Any) -> Optional[Round]:
        async with get_db_session_context() as db:
            model = await db.get(RoundModel, round_id)
            if model is None:
                return None
            for column, value in changes.items():
                setattr(model, column, value)
            await db.flush()
            return self._round_model_to_pydantic(model)

    async def delete_round(self, round_id: str) -> None:
        async with get_db_session_context() as db:
            question_ids = select(QuestionModel.id).where(QuestionModel.round_id == round_id)
            await self._delete_questions(db, question_ids)
            await db.execute(delete(RoundModel).where(RoundModel.id == round_id))

    async def set_round_numbers(self, numbers: dict[str, int]) -> None:
        async with get_db_session_context() as db:
            for round_id, number in numbers.items():
                await db.execute(
                    update(RoundModel)
                    .where(RoundModel.id == round_id)
                    .values(round_number=number)
                    .execution_options(synchronize_session=False)
                )

    # ========================================================================
    # Questions
    # ========================================================================

    async def add_question(self, question: Question) -> Question:
        async with get_db_session_context() as db:
            model = QuestionModel(id=question.question_id)
            self._apply_question(model, question)
            db.add(model)
            await db.flush()
            return self._question_model_to_pydantic(model)

    async def get_question(self, question_id: str) -> Optional[Question]:
        async with get_db_session_context() as db:
            model = await db.get(QuestionModel, question_id)
            return self._question_model_to_pydantic(model) if model else None

    async def get_questions(self, round_id: str) -> list[Question]:
        async with get_db_session_context() as db:
            result = await db.execute(
                select(QuestionModel)
                .where(QuestionModel.round_id == round_id)
                .order_by(QuestionModel.index_in_round)
            )
            return [self._question_model_to_pydantic(m) for m in result.scalars().all()]

    async def put_question(self, question: Question) -> Question:
        async with get_db_session_context() as db:
            model = await db.get(QuestionModel, question.question_id)
            if model is None:
                model = QuestionModel(id=question.question_id)
                db.add(model)
            self._apply_question(model, question)
            await db.flush()
            return self._question_model_to_pydantic(model)

    async def delete_question(self, question_id: str) -> None:
        async with get_db_session_context() as db:
            await self._delete_questions(db, [question_id])

    async def set_question_indexes(self, indexes: dict[str, int]) -> None:
        async with get_db_session_context() as db:
            for question_id, index in indexes.items():
                await db.execute(
                    update(QuestionModel)
                    .where(QuestionModel.id == question_id)
                    .values(index_in_round=index)
                    .execution_options(synchronize_session=False)
                )

    # ========================================================================
    # Answers
    # ========================================================================

    async def upsert_answer(
        self,
        answer_id: str,
        question_id: str,
        team_id: str,
        raw_answer: str,
        normalized_answer: str,
        answers: Optional[dict[str, str]] = None,
        normalized_answers: Optional[dict[str, str]] = None,
    ) -> Answer:
        content = {
            "raw_answer": raw_answer,
            "normalized_answer": normalized_answer,
            "answers": answers,
            "normalized_answers": normalized_answers,
        }
        try:
            return await self._write_answer(answer_id, question_id, team_id, content)
        except IntegrityError:
            # A concurrent first submission from the same team won the
            # insert; this write now finds that row and overwrites it
            return await self._write_answer(answer_id, question_id, team_id, content)

    async def _write_answer(
        self, answer_id: str, question_id: str, team_id: str, content: dict[str, Any]
    ) -> Answer:
        async with get_db_session_context() as db:
            result = await db.execute(
                select(AnswerModel).where(
                    AnswerModel.question_id == question_id,
                    AnswerModel.team_id == team_id,
                )
            )
            model = result.scalar_one_or_none()
            if model is None:
                model = AnswerModel(
                    id=answer_id,
                    question_id=question_id,
                    team_id=team_id,
                    needs_review=True,
                )
                db.add(model)
            for column, value in content.items():
                setattr(model, column, value)
            model.submitted_at = datetime.now(timezone.utc)
            await db.flush()
            return self._answer_model_to_pydantic(model)

    async def get_answer(self, answer_id: str) -> Optional[Answer]:
        async with get_db_session_context() as db:
            model = await db.get(AnswerModel, answer_id)
            return self._answer_model_to_pydantic(model) if model else None

    async def get_team_answer(self, question_id: str, team_id: str) -> Optional[Answer]:
        async with get_db_session_context() as db:
            result = await db.execute(
                select(AnswerModel).where(
                    AnswerModel.question_id == question_id,
                    AnswerModel.team_id == team_id,
                )
            )
            model = result.scalar_one_or_none()
            return self._answer_model_to_pydantic(model) if model else None

    async def get_question_answers(self, question_id: str) -> list[Answer]:
        async with get_db_session_context() as db:
            result = await db.execute(
                select(AnswerModel)
                .where(AnswerModel.question_id == question_id)
                .order_by(AnswerModel.submitted_at)
            )
            return [self._answer_model_to_pydantic(m) for m in result.scalars().all()]

    async def get_team_answers(self, team_id: str) -> list[Answer]:
        async with get_db_session_context() as db:
            result = await db.execute(
                select(AnswerModel)
                .where(AnswerModel.team_id == team_id)
                .order_by(AnswerModel.submitted_at)
            )
            return [self._answer_model_to_pydantic(m) for m in result.scalars().all()]

    async def update_answer_grades(self, grades: dict[str, AnswerGrade]) -> None:
        async with get_db_session_context() as db:
            result = await db.execute(
                select(AnswerModel).where(AnswerModel.id.in_(list(grades)))
            )
            for model in result.scalars().all():
                grade = grades[model.id]
                model.auto_score = grade.auto_score
                model.needs_review = grade.needs_review
                model.final_score = grade.final_score
            await db.flush()

    async def set_final_score(self, answer_id: str, score: int) -> Optional[Answer]:
        async with get_db_session_context() as db:
            model = await db.get(AnswerModel, answer_id)
            if model is None:
                return None
            model.final_score = score
            model.needs_review = False
            await db.flush()
            return self._answer_model_to_pydantic(model)

    async def finalize_question(self, question_id: str) -> Optional[list[Answer]]:
        async with get_db_session_context() as db:
            # Claim the question; only one caller can flip finalized_at
            claimed = await db.execute(
                update(QuestionModel)
                .where(QuestionModel.id == question_id, QuestionModel.finalized_at.is_(None))
                .values(finalized_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                return None

            result = await db.execute(
                select(AnswerModel)
                .where(AnswerModel.question_id == question_id)
                .order_by(AnswerModel.submitted_at)
            )
            models = result.scalars().all()

            for model in models:
                if model.final_score is None:
                    model.final_score = model.auto_score if model.auto_score is not None else 0
                    model.needs_review = False
                await db.execute(
                    update(TeamModel)
                    .where(TeamModel.id == model.team_id)
                    .values(total_score=TeamModel.total_score + model.final_score)
                    .execution_options(synchronize_session=False)
                )

            await db.flush()
            return [self._answer_model_to_pydantic(m) for m in models]
