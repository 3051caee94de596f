import uuid
import structlog
from typing import List
from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth import get_current_user
from core.config import settings
from core.errors import (
    AnswerValidationError,
    GenerationError,
    QuizNotFoundError,
    SessionNotFoundError,
    StoreError,
    VALIDATION_MESSAGES,
    ValidationErrorKind,
)
from db.session import get_db, get_redis
from schemas.quiz import (
    GenerateQuizRequest,
    GeneratedQuestion,
    QuizCreated,
    QuizDetail,
    QuizListItem,
    QuestionOut,
)
from schemas.session import (
    QuestionResult,
    QuizSessionCreate,
    QuizSessionCreated,
    QuizSessionDetail,
    QuizSessionListItem,
    QuizSessionOut,
    SaveSelectedOptionsRequest,
    SaveSelectedOptionsResponse,
    ScoreViewOut,
    SelectedOptionOut,
)
from services.ai_service import AIService
from services.answer_validator import AnswerSelection
from services.quiz_service import QuizService
from services.session_service import SessionService

logger = structlog.get_logger()

# API Documentation
API_DESCRIPTION = """
## Practice Quiz API

Generate multiple-choice quizzes, start attempts and grade them.

### Authentication

All `/api` endpoints except `/api/health` require a signed caller token:

- Header: `X-Auth-Token: <token>`
- Or: `Authorization: Bearer <token>`

Token format: `{user_id}:{timestamp}:{signature}`.
"""

TAGS_METADATA = [
    {
        "name": "quizzes",
        "description": "Generate, save and read quizzes.",
    },
    {
        "name": "quiz_sessions",
        "description": "Start attempts, save selected options and read graded results.",
    },
    {
        "name": "info",
        "description": "Public information endpoints.",
    },
]

app = FastAPI(
    title="Practice Quiz API",
    description=API_DESCRIPTION,
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies are caller errors: 400 with the first problem found
    errors = exc.errors()
    message = errors[0].get("msg") if errors else VALIDATION_MESSAGES[ValidationErrorKind.MALFORMED_BODY]
    logger.info("Request body rejected", error=message)
    return JSONResponse(status_code=400, content={"detail": message})


def _score_out(view) -> ScoreViewOut:
    return ScoreViewOut(**view.as_dict())


# === Quizzes ===

@app.post(
    "/api/quizzes/generate",
    response_model=List[GeneratedQuestion],
    tags=["quizzes"],
    summary="Generate quiz",
    description="Asks the language model for a new quiz. The result is not saved. Rate limited per user.",
    responses={
        400: {"description": "Invalid number of questions"},
        401: {"description": "Authentication required"},
        429: {"description": "Too many requests. Please wait."},
        502: {"description": "Model returned an unusable quiz"},
    },
)
async def generate_quiz(
    payload: GenerateQuizRequest,
    user_id: str = Depends(get_current_user),
    redis = Depends(get_redis),
):
    rate_key = f"rl:generate:{user_id}"
    current_count = await redis.get(rate_key)
    if current_count and int(current_count) >= settings.GENERATION_RATE_LIMIT:
        raise HTTPException(status_code=429, detail="Too many generation requests. Please wait a minute.")

    await redis.incr(rate_key)
    if not current_count:
        await redis.expire(rate_key, 60)

    try:
        return await AIService().generate_quiz(payload.number_of_questions)
    except GenerationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@app.post(
    "/api/quizzes",
    response_model=QuizCreated,
    status_code=201,
    tags=["quizzes"],
    summary="Save quiz",
    responses={
        400: {"description": "Invalid quiz body"},
        401: {"description": "Authentication required"},
    },
)
async def save_quiz(
    questions: List[GeneratedQuestion],
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not questions:
        raise HTTPException(status_code=400, detail="A quiz needs at least one question.")
    if len(questions) > settings.MAX_QUESTIONS_PER_QUIZ:
        raise HTTPException(status_code=400, detail=f"A quiz can have at most {settings.MAX_QUESTIONS_PER_QUIZ} questions.")

    try:
        quiz = await QuizService(db).save_quiz(questions, user_id=user_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return QuizCreated(quiz_id=quiz.id)


@app.get(
    "/api/quizzes",
    response_model=List[QuizListItem],
    tags=["quizzes"],
    summary="List quizzes",
)
async def list_quizzes(user_id: str = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    try:
        rows = await QuizService(db).list_quizzes()
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return [
        QuizListItem(id=quiz.id, created_at=quiz.created_at, questions_count=count)
        for quiz, count in rows
    ]


@app.get(
    "/api/quizzes/{quiz_id}",
    response_model=QuizDetail,
    tags=["quizzes"],
    summary="Get quiz details",
    responses={404: {"description": "Quiz not found"}},
)
async def get_quiz(quiz_id: int, user_id: str = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    try:
        quiz = await QuizService(db).get_quiz(quiz_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return QuizDetail.model_validate(quiz)


# === Quiz sessions ===

@app.post(
    "/api/quiz_sessions",
    response_model=QuizSessionCreated,
    status_code=201,
    tags=["quiz_sessions"],
    summary="Start a quiz session",
    responses={404: {"description": "Quiz not found"}},
)
async def create_quiz_session(
    payload: QuizSessionCreate,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        session = await SessionService(db).create_session(payload.quiz_id, user_id)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return QuizSessionCreated(session=QuizSessionOut.model_validate(session))


@app.get(
    "/api/quiz_sessions",
    response_model=List[QuizSessionListItem],
    tags=["quiz_sessions"],
    summary="List my quiz sessions",
    description="Newest first. Sessions without a stored score are graded from their selections when complete.",
)
async def list_quiz_sessions(user_id: str = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    try:
        rows = await SessionService(db).list_sessions(user_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return [
        QuizSessionListItem(
            id=session.id,
            quiz_id=session.quiz_id,
            created_at=session.created_at,
            score=_score_out(view),
        )
        for session, view in rows
    ]


@app.get(
    "/api/quiz_sessions/{session_id}",
    response_model=QuizSessionDetail,
    tags=["quiz_sessions"],
    summary="Get quiz session",
    responses={404: {"description": "Quiz session not found"}},
)
async def get_quiz_session(session_id: int, user_id: str = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    try:
        detail = await SessionService(db).get_session_detail(session_id, user_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return QuizSessionDetail(
        id=detail.session.id,
        quiz_id=detail.session.quiz_id,
        created_at=detail.session.created_at,
        completed=detail.completed,
        score=_score_out(detail.score),
        questions=[QuestionOut.model_validate(q) for q in detail.questions],
        selected_options=[SelectedOptionOut.model_validate(row) for row in detail.selected_options],
        results=[QuestionResult(**vars(result)) for result in detail.results],
    )


@app.post(
    "/api/quiz_sessions/{session_id}/selected_options",
    response_model=SaveSelectedOptionsResponse,
    tags=["quiz_sessions"],
    summary="Save selected options",
    description="Replaces every selected option of the session and re-grades it. An empty list resets the session to ungraded.",
    responses={
        400: {"description": "Duplicate question, foreign question, mismatched option or malformed body"},
        401: {"description": "Authentication required"},
        404: {"description": "Quiz session not found"},
    },
)
async def save_selected_options(
    session_id: int,
    payload: SaveSelectedOptionsRequest,
    user_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    selections = [
        AnswerSelection(question_id=item.question_id, option_id=item.option_id)
        for item in payload.selected_options
    ]
    try:
        result = await SessionService(db).submit_selected_options(session_id, user_id, selections)
    except AnswerValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return SaveSelectedOptionsResponse(
        selected_options=[SelectedOptionOut.model_validate(row) for row in result.selected_options]
    )


@app.get("/api/health", tags=["info"], summary="Health check")
async def health():
    return {"status": "ok"}
