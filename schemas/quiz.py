"""Request/response models for quiz generation, saving and reading."""

from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.config import settings


class GeneratedOption(BaseModel):
    """One answer option as produced by the generator."""
    option: str = Field(..., description="Option text.", min_length=1)
    option_translation: str = Field("", description="Simplified Chinese translation of the option text.")
    option_explanation: str = Field("", description="Why this option is correct or incorrect.")


class GeneratedQuestion(BaseModel):
    """A multiple-choice question with its answer key."""
    question: str = Field(..., description="Question text.", min_length=1)
    question_translation: str = Field("", description="Simplified Chinese translation of the question text.")
    options: List[GeneratedOption] = Field(..., min_length=2, max_length=10)
    answer_index: int = Field(..., description="Index of the correct option (0-based)", ge=0)
    explanation: str = Field("", description="Explanation of the correct answer.")

    @model_validator(mode="after")
    def check_answer_index(self):
        if self.answer_index >= len(self.options):
            raise ValueError("answer_index must point to one of the options.")
        return self


class GenerateQuizRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    number_of_questions: int = Field(..., alias="numberOfQuestions", ge=1, le=settings.MAX_QUESTIONS_PER_QUIZ)


class QuizCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    quiz_id: int = Field(..., alias="quizId")


class QuizListItem(BaseModel):
    id: int
    created_at: datetime
    questions_count: int


class OptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    option_index: int
    option: str
    option_translation: str
    option_explanation: str


class QuestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    question_index: int
    question: str
    question_translation: str
    explanation: str
    answer_index: int
    options: List[OptionOut]


class QuizDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    questions: List[QuestionOut]
