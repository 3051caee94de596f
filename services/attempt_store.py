from dataclasses import dataclass, field
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from models.session import QuizSession
from models.selected_option import SelectedOption
from services.answer_validator import ValidatedAnswers
from services.scoring import compute_score
from core.errors import StoreError
from core.logger import logger


@dataclass
class SubmissionResult:
    score: Optional[int]
    selected_options: List[SelectedOption] = field(default_factory=list)


def snapshot_total(current_total, validated: ValidatedAnswers) -> int:
    """Keep the creation-time snapshot when it is usable, else count this submission."""
    if isinstance(current_total, int) and not isinstance(current_total, bool):
        return current_total
    return len(set(validated.question_ids))


class AttemptStore:
    """
    Replaces a session's selected options and its cached score as one unit.

    The caller must already hold the session row lock (SessionGuard with
    for_update=True) in the current transaction. Every step runs in that
    transaction; any failure rolls all of them back.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def replace_and_score(self, session: QuizSession, validated: ValidatedAnswers) -> SubmissionResult:
        # Read before any step can fail; rollback expires the instance
        session_id = session.id
        try:
            await self.db.execute(
                delete(SelectedOption).where(SelectedOption.quiz_session_id == session_id)
            )
        except SQLAlchemyError as e:
            await self._fail(session_id, "Failed to reset selected options for this session.", e)

        if not validated.selections:
            session.score = None
            await self._commit(session_id, "Failed to reset quiz session score.")
            logger.info("Quiz session reset", session_id=session_id)
            return SubmissionResult(score=None, selected_options=[])

        rows = [
            SelectedOption(
                quiz_session_id=session_id,
                question_id=selection.question_id,
                option_id=selection.option_id,
            )
            for selection in validated.selections
        ]
        self.db.add_all(rows)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            await self._fail(session_id, "Failed to save selected options.", e)

        score = compute_score(validated.selections, validated.answer_key, validated.option_positions)
        session.score = score
        session.total_questions = snapshot_total(session.total_questions, validated)
        await self._commit(session_id, "Failed to update quiz session score.")

        logger.info(
            "Selected options saved",
            session_id=session_id,
            answered=len(rows),
            score=score,
            total_questions=session.total_questions,
        )
        return SubmissionResult(score=score, selected_options=rows)

    async def _commit(self, session_id: int, message: str):
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail(session_id, message, e)

    async def _fail(self, session_id: int, message: str, error: Exception):
        await self.db.rollback()
        logger.error(message, session_id=session_id, error=str(error))
        raise StoreError(message) from error
