from sqlalchemy import Column, Integer, String, ForeignKey
from models.base import Base, TimestampMixin

class QuizSession(Base, TimestampMixin):
    __tablename__ = "quiz_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True, nullable=False)

    # NULL means "not graded": never submitted, reset, or written before scoring existed
    score = Column(Integer, nullable=True)
    # Question count captured at creation, not re-synced if the quiz changes
    total_questions = Column(Integer, nullable=True)
