from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from models.quiz import Quiz, Question
from models.session import QuizSession
from models.selected_option import SelectedOption
from services.answer_validator import AnswerSelection, AnswerSetValidator
from services.attempt_store import AttemptStore, SubmissionResult
from services.scoring import ScoreReconciler, ScoreView, build_score_view, is_correct_selection
from core.errors import AnswerValidationError, QuizNotFoundError, SessionNotFoundError, StoreError
from core.logger import logger


class SessionGuard:
    """Resolves a quiz session for its owner. Other users' sessions look missing."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, session_id: int, user_id: str, for_update: bool = False) -> QuizSession:
        stmt = select(QuizSession).filter(QuizSession.id == session_id, QuizSession.user_id == user_id)
        if for_update:
            # Serializes submissions for the same session until commit/rollback
            stmt = stmt.with_for_update()
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Failed to verify quiz session", session_id=session_id, error=str(e))
            raise StoreError("Failed to verify quiz session.") from e

        session = result.scalar_one_or_none()
        if not session:
            raise SessionNotFoundError()
        return session


@dataclass
class QuestionResultView:
    question_id: int
    selected_option_id: Optional[int]
    correct_option_id: Optional[int]
    is_correct: bool


@dataclass
class SessionDetail:
    session: QuizSession
    questions: List[Question]
    selected_options: List[SelectedOption]
    score: ScoreView
    completed: bool
    results: List[QuestionResultView] = field(default_factory=list)


class SessionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_session(self, quiz_id: int, user_id: str) -> QuizSession:
        try:
            quiz_exists = (await self.db.execute(select(Quiz.id).filter(Quiz.id == quiz_id))).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to verify quiz", quiz_id=quiz_id, error=str(e))
            raise StoreError("Failed to verify quiz.") from e
        if quiz_exists is None:
            raise QuizNotFoundError()

        try:
            result = await self.db.execute(select(func.count(Question.id)).filter(Question.quiz_id == quiz_id))
            question_count = result.scalar() or 0

            session = QuizSession(
                user_id=user_id,
                quiz_id=quiz_id,
                total_questions=question_count,
                score=None,
            )
            self.db.add(session)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to create quiz session", quiz_id=quiz_id, user_id=user_id, error=str(e))
            raise StoreError("Failed to create quiz session.") from e

        logger.info("Quiz session created", user_id=user_id, session_id=session.id, total_questions=question_count)
        return session

    async def submit_selected_options(
        self, session_id: int, user_id: str, selections: Sequence[AnswerSelection]
    ) -> SubmissionResult:
        """
        Replace the session's selected options and re-grade it.

        The session row stays locked from lookup until the store commits or
        rolls back. Validation failures release the lock with nothing written.
        """
        try:
            session = await SessionGuard(self.db).resolve(session_id, user_id, for_update=True)
            validated = await AnswerSetValidator(self.db).validate(selections, session.quiz_id)
        except (SessionNotFoundError, AnswerValidationError, StoreError):
            await self.db.rollback()
            raise

        return await AttemptStore(self.db).replace_and_score(session, validated)

    async def list_sessions(self, user_id: str) -> List[Tuple[QuizSession, ScoreView]]:
        try:
            result = await self.db.execute(
                select(QuizSession)
                .filter(QuizSession.user_id == user_id)
                .order_by(QuizSession.created_at.desc(), QuizSession.id.desc())
            )
            sessions = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to load sessions", user_id=user_id, error=str(e))
            raise StoreError("Failed to load sessions.") from e

        reconciled = await ScoreReconciler(self.db).reconcile_sessions(sessions)
        return [(s, build_score_view(s, reconciled.get(s.id))) for s in sessions]

    async def get_session_detail(self, session_id: int, user_id: str) -> SessionDetail:
        session = await SessionGuard(self.db).resolve(session_id, user_id)

        try:
            result = await self.db.execute(
                select(Question)
                .filter(Question.quiz_id == session.quiz_id)
                .options(selectinload(Question.options))
                .order_by(Question.question_index)
            )
            questions = list(result.scalars().all())

            result = await self.db.execute(
                select(SelectedOption)
                .filter(SelectedOption.quiz_session_id == session.id)
                .order_by(SelectedOption.id)
            )
            selected = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to load quiz session", session_id=session_id, error=str(e))
            raise StoreError("Failed to load quiz session.") from e

        reconciled = await ScoreReconciler(self.db).reconcile_session(session, selected)
        score = build_score_view(session, reconciled)

        selected_by_question: Dict[int, int] = {row.question_id: row.option_id for row in selected}
        completed = bool(questions) and len(selected_by_question) == len(questions)

        detail = SessionDetail(
            session=session,
            questions=questions,
            selected_options=selected,
            score=score,
            completed=completed,
        )
        if completed:
            detail.results = [self._question_result(q, selected_by_question.get(q.id)) for q in questions]
        return detail

    @staticmethod
    def _question_result(question: Question, selected_option_id: Optional[int]) -> QuestionResultView:
        selected = next((o for o in question.options if o.id == selected_option_id), None)
        correct = next((o for o in question.options if o.option_index == question.answer_index), None)
        return QuestionResultView(
            question_id=question.id,
            selected_option_id=selected.id if selected else None,
            correct_option_id=correct.id if correct else None,
            is_correct=selected is not None and is_correct_selection(question.answer_index, selected.option_index),
        )
