from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from models.base import Base, TimestampMixin

class Quiz(Base, TimestampMixin):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    created_by = Column(String(64), index=True, nullable=True)

    questions = relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.question_index",
        cascade="all, delete-orphan",
    )


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        UniqueConstraint("quiz_id", "question_index", name="uq_questions_quiz_index"),
    )

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), index=True, nullable=False)
    question_index = Column(Integer, nullable=False)  # 1-based display order
    question = Column(Text, nullable=False)
    question_translation = Column(Text, nullable=False, default="")
    explanation = Column(Text, nullable=False, default="")
    # Position (option_index) of the correct option
    answer_index = Column(Integer, nullable=False)

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "Option",
        back_populates="question",
        order_by="Option.option_index",
        cascade="all, delete-orphan",
    )


class Option(Base):
    __tablename__ = "options"
    __table_args__ = (
        UniqueConstraint("question_id", "option_index", name="uq_options_question_index"),
    )

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), index=True, nullable=False)
    option_index = Column(Integer, nullable=False)  # 0-based, contiguous
    option = Column(Text, nullable=False)
    option_translation = Column(Text, nullable=False, default="")
    option_explanation = Column(Text, nullable=False, default="")

    question = relationship("Question", back_populates="options")
