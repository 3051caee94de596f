from types import SimpleNamespace
from sqlalchemy import select

from models.quiz import Quiz, Question, Option
from models.session import QuizSession
from models.selected_option import SelectedOption


async def create_quiz(db, answer_key, options_per_question=4, created_by="author"):
    quiz = Quiz(created_by=created_by)
    for question_index, answer_index in enumerate(answer_key, start=1):
        question = Question(
            question_index=question_index,
            question=f"Question {question_index}",
            answer_index=answer_index,
        )
        question.options = [
            Option(option_index=option_index, option=f"Q{question_index} option {option_index}")
            for option_index in range(options_per_question)
        ]
        quiz.questions.append(question)
    db.add(quiz)
    await db.commit()
    return quiz


def quiz_layout(quiz):
    """Plain ids: layout.q[i] is question i (0-based), layout.opt[i][j] its option at position j."""
    return SimpleNamespace(
        quiz=quiz,
        q=[question.id for question in quiz.questions],
        opt=[[option.id for option in question.options] for question in quiz.questions],
    )


async def reload_session(db, session_id):
    result = await db.execute(
        select(QuizSession)
        .filter(QuizSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def stored_selections(db, session_id):
    result = await db.execute(
        select(SelectedOption.question_id, SelectedOption.option_id)
        .filter(SelectedOption.quiz_session_id == session_id)
        .order_by(SelectedOption.question_id)
    )
    return [tuple(row) for row in result.all()]
