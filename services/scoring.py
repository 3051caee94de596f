"""
Scoring for quiz sessions.

The persisted `quiz_sessions.score` is a cache of `compute_score` over the
session's selected options. The submission path writes it; the read path
falls back to `reconcile_score` when it is NULL. Both go through
`is_correct_selection` so they can never disagree on what "correct" means.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.quiz import Question, Option
from models.session import QuizSession
from models.selected_option import SelectedOption
from core.logger import logger


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_correct_selection(answer_index: Optional[int], option_index: Optional[int]) -> bool:
    """True iff the chosen option's position is the question's answer_index."""
    return _is_int(answer_index) and _is_int(option_index) and answer_index == option_index


def compute_score(
    selections: Iterable,
    answer_key: Dict[int, int],
    option_positions: Dict[int, int],
) -> int:
    """
    Count correct selections.

    Args:
        selections: objects with `question_id` and `option_id`
        answer_key: question_id -> answer_index
        option_positions: option_id -> option_index
    """
    return sum(
        1
        for selection in selections
        if is_correct_selection(
            answer_key.get(selection.question_id),
            option_positions.get(selection.option_id),
        )
    )


@dataclass(frozen=True)
class ReconciledScore:
    score: int
    total_questions: int


def reconcile_score(
    total_questions: Optional[int],
    raw_selections: Sequence,
    answer_key: Dict[int, int],
    option_positions: Dict[int, int],
) -> Optional[ReconciledScore]:
    """
    Derive a score for a session whose persisted score is NULL.

    Only trusted when every question of the snapshot has a selection, so a
    half-finished attempt is reported as ungraded (None) rather than with a
    misleadingly low score.
    """
    if not _is_int(total_questions) or total_questions <= 0:
        return None
    if len(raw_selections) != total_questions:
        return None
    return ReconciledScore(
        score=compute_score(raw_selections, answer_key, option_positions),
        total_questions=total_questions,
    )


@dataclass(frozen=True)
class ScoreView:
    score: Optional[int]
    total_questions: Optional[int]
    source: Optional[str]  # "stored", "reconciled" or None

    @property
    def graded(self) -> bool:
        return self.source is not None

    @property
    def label(self) -> str:
        if not self.graded:
            return "Not graded yet"
        return f"{self.score} / {self.total_questions}"

    def as_dict(self) -> dict:
        return {
            "score": self.score,
            "total_questions": self.total_questions,
            "graded": self.graded,
            "source": self.source,
            "label": self.label,
        }


UNGRADED = ScoreView(score=None, total_questions=None, source=None)


def build_score_view(session: QuizSession, reconciled: Optional[ReconciledScore] = None) -> ScoreView:
    if session.score is not None and session.total_questions is not None:
        return ScoreView(score=session.score, total_questions=session.total_questions, source="stored")
    if session.score is None and reconciled is not None:
        return ScoreView(score=reconciled.score, total_questions=reconciled.total_questions, source="reconciled")
    return UNGRADED


async def load_answer_key(db: AsyncSession, question_ids, option_ids):
    """Return (answer_key, option_positions) for the given ids."""
    answer_key: Dict[int, int] = {}
    option_positions: Dict[int, int] = {}

    if question_ids:
        result = await db.execute(
            select(Question.id, Question.answer_index).where(Question.id.in_(question_ids))
        )
        answer_key = {row.id: row.answer_index for row in result}

    if option_ids:
        result = await db.execute(
            select(Option.id, Option.option_index).where(Option.id.in_(option_ids))
        )
        option_positions = {row.id: row.option_index for row in result}

    return answer_key, option_positions


class ScoreReconciler:
    """Read-only fallback scoring for sessions without a persisted score."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def reconcile_sessions(self, sessions: Sequence[QuizSession]) -> Dict[int, ReconciledScore]:
        """
        Reconcile every ungraded session in one batch.

        Sessions missing from the returned dict are ungraded. Store failures
        are logged and degrade to "ungraded" for the whole batch.
        """
        missing = [s for s in sessions if s.score is None]
        if not missing:
            return {}

        try:
            result = await self.db.execute(
                select(SelectedOption).where(
                    SelectedOption.quiz_session_id.in_([s.id for s in missing])
                )
            )
            rows = result.scalars().all()

            answer_key, option_positions = await load_answer_key(
                self.db,
                {row.question_id for row in rows},
                {row.option_id for row in rows},
            )
        except SQLAlchemyError as e:
            logger.warning("Score reconciliation skipped", sessions=len(missing), error=str(e))
            return {}

        rows_by_session: Dict[int, List[SelectedOption]] = defaultdict(list)
        for row in rows:
            rows_by_session[row.quiz_session_id].append(row)

        reconciled: Dict[int, ReconciledScore] = {}
        for session in missing:
            fallback = reconcile_score(
                session.total_questions,
                rows_by_session.get(session.id, []),
                answer_key,
                option_positions,
            )
            if fallback is not None:
                reconciled[session.id] = fallback

        logger.debug("Scores reconciled", requested=len(missing), reconciled=len(reconciled))
        return reconciled

    async def reconcile_session(self, session: QuizSession, raw_selections: Sequence[SelectedOption]) -> Optional[ReconciledScore]:
        """Single-session variant for the detail view, reusing already loaded selections."""
        if session.score is not None:
            return None
        try:
            answer_key, option_positions = await load_answer_key(
                self.db,
                {row.question_id for row in raw_selections},
                {row.option_id for row in raw_selections},
            )
        except SQLAlchemyError as e:
            logger.warning("Score reconciliation skipped", session_id=session.id, error=str(e))
            return None
        return reconcile_score(session.total_questions, raw_selections, answer_key, option_positions)
