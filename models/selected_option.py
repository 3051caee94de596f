from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from models.base import Base

class SelectedOption(Base):
    __tablename__ = "selected_options"
    __table_args__ = (
        UniqueConstraint("quiz_session_id", "question_id", name="uq_selected_options_session_question"),
    )

    id = Column(Integer, primary_key=True, index=True)
    quiz_session_id = Column(Integer, ForeignKey("quiz_sessions.id", ondelete="CASCADE"), index=True, nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    option_id = Column(Integer, ForeignKey("options.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
