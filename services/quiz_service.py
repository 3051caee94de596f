from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from models.quiz import Quiz, Question, Option
from schemas.quiz import GeneratedQuestion
from core.errors import QuizNotFoundError, StoreError
from core.logger import logger

class QuizService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def save_quiz(self, questions: List[GeneratedQuestion], user_id: Optional[str] = None) -> Quiz:
        """Store a generated quiz with its questions and options in one transaction."""
        quiz = Quiz(created_by=user_id)
        for question_index, item in enumerate(questions, start=1):
            question = Question(
                question_index=question_index,
                question=item.question,
                question_translation=item.question_translation,
                explanation=item.explanation,
                answer_index=item.answer_index,
            )
            question.options = [
                Option(
                    option_index=option_index,
                    option=opt.option,
                    option_translation=opt.option_translation,
                    option_explanation=opt.option_explanation,
                )
                for option_index, opt in enumerate(item.options)
            ]
            quiz.questions.append(question)

        self.db.add(quiz)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to save quiz", user_id=user_id, error=str(e))
            raise StoreError("Failed to save quiz.") from e

        logger.info("Quiz saved", user_id=user_id, quiz_id=quiz.id, questions=len(questions))
        return quiz

    async def list_quizzes(self) -> List[Tuple[Quiz, int]]:
        """All quizzes, newest first, with their question counts."""
        question_count = (
            select(func.count(Question.id))
            .where(Question.quiz_id == Quiz.id)
            .correlate(Quiz)
            .scalar_subquery()
        )
        try:
            result = await self.db.execute(
                select(Quiz, question_count).order_by(Quiz.created_at.desc(), Quiz.id.desc())
            )
        except SQLAlchemyError as e:
            logger.error("Failed to load quizzes", error=str(e))
            raise StoreError("Failed to load quizzes.") from e
        return [(quiz, count) for quiz, count in result.all()]

    async def get_quiz(self, quiz_id: int) -> Quiz:
        try:
            result = await self.db.execute(
                select(Quiz)
                .filter(Quiz.id == quiz_id)
                .options(selectinload(Quiz.questions).selectinload(Question.options))
            )
        except SQLAlchemyError as e:
            logger.error("Failed to fetch quiz", quiz_id=quiz_id, error=str(e))
            raise StoreError("Failed to fetch quiz.") from e

        quiz = result.scalar_one_or_none()
        if not quiz:
            raise QuizNotFoundError()
        return quiz
