"""Request/response models for quiz sessions (attempts)."""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from schemas.quiz import QuestionOut


class QuizSessionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    quiz_id: int = Field(..., alias="quizId")


class QuizSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quiz_id: int
    user_id: str
    score: Optional[int] = None
    total_questions: Optional[int] = None
    created_at: datetime


class QuizSessionCreated(BaseModel):
    session: QuizSessionOut


class SelectedOptionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: int = Field(..., alias="questionId")
    option_id: int = Field(..., alias="optionId")


class SaveSelectedOptionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    selected_options: List[SelectedOptionIn] = Field(..., alias="selectedOptions")


class SelectedOptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quiz_session_id: int
    question_id: int
    option_id: int
    created_at: datetime


class SaveSelectedOptionsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    selected_options: List[SelectedOptionOut] = Field(..., alias="selectedOptions")


class ScoreViewOut(BaseModel):
    score: Optional[int] = None
    total_questions: Optional[int] = None
    graded: bool
    source: Optional[Literal["stored", "reconciled"]] = None
    label: str


class QuizSessionListItem(BaseModel):
    id: int
    quiz_id: int
    created_at: datetime
    score: ScoreViewOut


class QuestionResult(BaseModel):
    question_id: int
    selected_option_id: Optional[int] = None
    correct_option_id: Optional[int] = None
    is_correct: bool


class QuizSessionDetail(BaseModel):
    id: int
    quiz_id: int
    created_at: datetime
    completed: bool
    score: ScoreViewOut
    questions: List[QuestionOut]
    selected_options: List[SelectedOptionOut]
    results: List[QuestionResult] = Field(default_factory=list)
