from dataclasses import dataclass, field
from typing import Dict, List, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from models.quiz import Question, Option
from core.errors import AnswerValidationError, ValidationErrorKind, StoreError
from core.logger import logger


@dataclass(frozen=True)
class AnswerSelection:
    question_id: int
    option_id: int


@dataclass
class ValidatedAnswers:
    """Selections checked against the quiz, with the answer key loaded while checking."""
    selections: List[AnswerSelection] = field(default_factory=list)
    answer_key: Dict[int, int] = field(default_factory=dict)         # question_id -> answer_index
    option_positions: Dict[int, int] = field(default_factory=dict)   # option_id -> option_index

    def __len__(self):
        return len(self.selections)

    @property
    def question_ids(self) -> List[int]:
        return [s.question_id for s in self.selections]


def ensure_unique_questions(selections: Sequence[AnswerSelection]) -> None:
    question_ids = [s.question_id for s in selections]
    if len(set(question_ids)) != len(question_ids):
        raise AnswerValidationError(ValidationErrorKind.DUPLICATE_QUESTION)


class AnswerSetValidator:
    """
    Validates a candidate answer set for a quiz.

    Rules are checked in a fixed order so the reported error is deterministic:
    duplicate question, foreign question, mismatched option. Completeness is
    not required; an empty set is valid and means "reset".
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def validate(self, selections: Sequence[AnswerSelection], quiz_id: int) -> ValidatedAnswers:
        ensure_unique_questions(selections)

        if not selections:
            return ValidatedAnswers()

        question_ids = list({s.question_id for s in selections})
        answer_key = await self._load_quiz_questions(quiz_id, question_ids)
        if len(answer_key) != len(question_ids):
            logger.info("Rejected foreign questions", quiz_id=quiz_id,
                        claimed=len(question_ids), found=len(answer_key))
            raise AnswerValidationError(ValidationErrorKind.FOREIGN_QUESTION)

        option_ids = list({s.option_id for s in selections})
        owners, option_positions = await self._load_options(option_ids, question_ids)

        # Covers unknown options as well as options owned by another question
        if any(owners.get(s.option_id) != s.question_id for s in selections):
            logger.info("Rejected mismatched options", quiz_id=quiz_id)
            raise AnswerValidationError(ValidationErrorKind.MISMATCHED_OPTION)

        return ValidatedAnswers(
            selections=list(selections),
            answer_key=answer_key,
            option_positions=option_positions,
        )

    async def _load_quiz_questions(self, quiz_id: int, question_ids: List[int]) -> Dict[int, int]:
        try:
            result = await self.db.execute(
                select(Question.id, Question.answer_index).where(
                    Question.quiz_id == quiz_id,
                    Question.id.in_(question_ids),
                )
            )
        except SQLAlchemyError as e:
            logger.error("Failed to validate questions", quiz_id=quiz_id, error=str(e))
            raise StoreError("Failed to validate questions.") from e
        return {row.id: row.answer_index for row in result}

    async def _load_options(self, option_ids: List[int], question_ids: List[int]):
        try:
            result = await self.db.execute(
                select(Option.id, Option.question_id, Option.option_index).where(
                    Option.id.in_(option_ids),
                    Option.question_id.in_(question_ids),
                )
            )
        except SQLAlchemyError as e:
            logger.error("Failed to validate options", error=str(e))
            raise StoreError("Failed to validate options.") from e

        owners = {}
        positions = {}
        for row in result:
            owners[row.id] = row.question_id
            positions[row.id] = row.option_index
        return owners, positions
