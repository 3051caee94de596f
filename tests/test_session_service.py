import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy.exc import OperationalError

from core.errors import AnswerValidationError, QuizNotFoundError, SessionNotFoundError, StoreError, ValidationErrorKind
from models.session import QuizSession
from models.selected_option import SelectedOption
from services.answer_validator import AnswerSelection
from services.attempt_store import snapshot_total
from services.answer_validator import ValidatedAnswers
from services.session_service import SessionGuard, SessionService
from helpers import reload_session, stored_selections


def scenario_one(quiz):
    """q1 correct, q2 correct, q3 wrong."""
    return [
        AnswerSelection(quiz.q[0], quiz.opt[0][0]),
        AnswerSelection(quiz.q[1], quiz.opt[1][2]),
        AnswerSelection(quiz.q[2], quiz.opt[2][3]),
    ]


@pytest.mark.asyncio
async def test_create_session_snapshots_question_count(db, sample_quiz):
    session = await SessionService(db).create_session(sample_quiz.quiz.id, "user-1")

    assert session.id is not None
    assert session.total_questions == 3
    assert session.score is None


@pytest.mark.asyncio
async def test_create_session_unknown_quiz(db):
    with pytest.raises(QuizNotFoundError):
        await SessionService(db).create_session(12345, "user-1")


@pytest.mark.asyncio
async def test_guard_hides_other_users_sessions(db, quiz_session):
    guard = SessionGuard(db)
    assert (await guard.resolve(quiz_session.id, "user-1")).id == quiz_session.id

    with pytest.raises(SessionNotFoundError):
        await guard.resolve(quiz_session.id, "user-2")
    with pytest.raises(SessionNotFoundError):
        await guard.resolve(quiz_session.id + 100, "user-1")


@pytest.mark.asyncio
async def test_submit_scores_answers(db, sample_quiz, quiz_session):
    result = await SessionService(db).submit_selected_options(quiz_session.id, "user-1", scenario_one(sample_quiz))

    assert result.score == 2
    assert len(result.selected_options) == 3
    assert all(row.id is not None for row in result.selected_options)

    session = await reload_session(db, quiz_session.id)
    assert session.score == 2
    assert session.total_questions == 3


@pytest.mark.asyncio
async def test_resubmission_is_idempotent(db, sample_quiz, quiz_session):
    service = SessionService(db)
    first = await service.submit_selected_options(quiz_session.id, "user-1", scenario_one(sample_quiz))
    second = await service.submit_selected_options(quiz_session.id, "user-1", scenario_one(sample_quiz))

    assert first.score == second.score == 2
    assert await stored_selections(db, quiz_session.id) == [
        (sample_quiz.q[0], sample_quiz.opt[0][0]),
        (sample_quiz.q[1], sample_quiz.opt[1][2]),
        (sample_quiz.q[2], sample_quiz.opt[2][3]),
    ]


@pytest.mark.asyncio
async def test_resubmission_replaces_previous_answers(db, sample_quiz, quiz_session):
    service = SessionService(db)
    await service.submit_selected_options(quiz_session.id, "user-1", scenario_one(sample_quiz))
    result = await service.submit_selected_options(
        quiz_session.id, "user-1", [AnswerSelection(sample_quiz.q[2], sample_quiz.opt[2][1])]
    )

    assert result.score == 1
    assert await stored_selections(db, quiz_session.id) == [(sample_quiz.q[2], sample_quiz.opt[2][1])]
    # Snapshot is kept even though only one question was answered
    assert (await reload_session(db, quiz_session.id)).total_questions == 3


@pytest.mark.asyncio
async def test_empty_submission_resets_session(db, sample_quiz, quiz_session):
    service = SessionService(db)
    await service.submit_selected_options(quiz_session.id, "user-1", scenario_one(sample_quiz))
    result = await service.submit_selected_options(quiz_session.id, "user-1", [])

    assert result.score is None
    assert result.selected_options == []
    assert await stored_selections(db, quiz_session.id) == []

    session = await reload_session(db, quiz_session.id)
    assert session.score is None
    assert session.total_questions == 3


@pytest.mark.asyncio
async def test_duplicate_question_leaves_store_unchanged(db, sample_quiz, quiz_session):
    session_id = quiz_session.id
    service = SessionService(db)
    await service.submit_selected_options(session_id, "user-1", scenario_one(sample_quiz))

    with pytest.raises(AnswerValidationError) as exc:
        await service.submit_selected_options(session_id, "user-1", [
            AnswerSelection(sample_quiz.q[0], sample_quiz.opt[0][0]),
            AnswerSelection(sample_quiz.q[0], sample_quiz.opt[0][1]),
        ])
    assert exc.value.kind == ValidationErrorKind.DUPLICATE_QUESTION

    assert len(await stored_selections(db, session_id)) == 3
    assert (await reload_session(db, session_id)).score == 2


@pytest.mark.asyncio
async def test_foreign_question_leaves_store_unchanged(db, sample_quiz, other_quiz, quiz_session):
    session_id = quiz_session.id
    service = SessionService(db)
    await service.submit_selected_options(session_id, "user-1", scenario_one(sample_quiz))

    with pytest.raises(AnswerValidationError) as exc:
        await service.submit_selected_options(
            session_id, "user-1", [AnswerSelection(other_quiz.q[0], other_quiz.opt[0][3])]
        )
    assert exc.value.kind == ValidationErrorKind.FOREIGN_QUESTION

    assert len(await stored_selections(db, session_id)) == 3
    assert (await reload_session(db, session_id)).score == 2


@pytest.mark.asyncio
async def test_mismatched_option_leaves_store_unchanged(db, sample_quiz, quiz_session):
    session_id = quiz_session.id
    with pytest.raises(AnswerValidationError) as exc:
        await SessionService(db).submit_selected_options(
            session_id, "user-1", [AnswerSelection(sample_quiz.q[0], sample_quiz.opt[1][0])]
        )
    assert exc.value.kind == ValidationErrorKind.MISMATCHED_OPTION

    assert await stored_selections(db, session_id) == []
    assert (await reload_session(db, session_id)).score is None


@pytest.mark.asyncio
async def test_submit_to_other_users_session(db, sample_quiz, quiz_session):
    session_id = quiz_session.id
    with pytest.raises(SessionNotFoundError):
        await SessionService(db).submit_selected_options(session_id, "user-2", scenario_one(sample_quiz))
    assert await stored_selections(db, session_id) == []


def test_snapshot_total_falls_back_to_answered_questions():
    validated = ValidatedAnswers(selections=[AnswerSelection(1, 10), AnswerSelection(2, 20)])
    assert snapshot_total(5, validated) == 5
    assert snapshot_total(None, validated) == 2


@pytest.mark.asyncio
async def test_missing_snapshot_filled_on_submit(db, sample_quiz):
    session = QuizSession(user_id="user-1", quiz_id=sample_quiz.quiz.id, total_questions=None)
    db.add(session)
    await db.commit()

    await SessionService(db).submit_selected_options(session.id, "user-1", scenario_one(sample_quiz)[:2])

    session = await reload_session(db, session.id)
    assert session.score == 2
    assert session.total_questions == 2


@pytest.mark.asyncio
async def test_list_sessions_stored_reconciled_and_ungraded(db, sample_quiz):
    service = SessionService(db)
    graded = await service.create_session(sample_quiz.quiz.id, "user-1")
    await service.submit_selected_options(graded.id, "user-1", scenario_one(sample_quiz))

    # Written before scores were persisted: complete selections, NULL score
    legacy = QuizSession(user_id="user-1", quiz_id=sample_quiz.quiz.id, total_questions=3)
    # Only two of three answered, NULL score
    partial = QuizSession(user_id="user-1", quiz_id=sample_quiz.quiz.id, total_questions=3)
    someone_else = QuizSession(user_id="user-2", quiz_id=sample_quiz.quiz.id, total_questions=3)
    db.add_all([legacy, partial, someone_else])
    await db.flush()
    db.add_all(
        [SelectedOption(quiz_session_id=legacy.id, question_id=s.question_id, option_id=s.option_id)
         for s in scenario_one(sample_quiz)]
        + [SelectedOption(quiz_session_id=partial.id, question_id=s.question_id, option_id=s.option_id)
           for s in scenario_one(sample_quiz)[:2]]
    )
    await db.commit()

    views = {session.id: view for session, view in await service.list_sessions("user-1")}

    assert set(views) == {graded.id, legacy.id, partial.id}
    assert views[graded.id].source == "stored"
    assert views[graded.id].label == "2 / 3"
    assert views[legacy.id].source == "reconciled"
    assert views[legacy.id].label == "2 / 3"
    assert not views[partial.id].graded
    assert views[partial.id].label == "Not graded yet"


@pytest.mark.asyncio
async def test_session_detail_in_progress(db, sample_quiz, quiz_session):
    service = SessionService(db)
    await service.submit_selected_options(
        quiz_session.id, "user-1", [AnswerSelection(sample_quiz.q[0], sample_quiz.opt[0][0])]
    )

    detail = await service.get_session_detail(quiz_session.id, "user-1")

    assert [q.id for q in detail.questions] == sample_quiz.q
    assert [o.option_index for o in detail.questions[0].options] == [0, 1, 2, 3]
    assert len(detail.selected_options) == 1
    assert not detail.completed
    assert detail.results == []
    # Partial saves are still graded by the write path
    assert detail.score.label == "1 / 3"


@pytest.mark.asyncio
async def test_session_detail_completed_results(db, sample_quiz, quiz_session):
    service = SessionService(db)
    await service.submit_selected_options(quiz_session.id, "user-1", scenario_one(sample_quiz))

    detail = await service.get_session_detail(quiz_session.id, "user-1")

    assert detail.completed
    assert [r.is_correct for r in detail.results] == [True, True, False]
    assert detail.results[2].selected_option_id == sample_quiz.opt[2][3]
    assert detail.results[2].correct_option_id == sample_quiz.opt[2][1]
    assert detail.score.source == "stored"


@pytest.mark.asyncio
async def test_session_detail_reconciles_reset_session(db, sample_quiz, quiz_session):
    db.add_all(
        [SelectedOption(quiz_session_id=quiz_session.id, question_id=s.question_id, option_id=s.option_id)
         for s in scenario_one(sample_quiz)]
    )
    await db.commit()

    detail = await SessionService(db).get_session_detail(quiz_session.id, "user-1")

    assert detail.score.source == "reconciled"
    assert detail.score.score == 2


@pytest.mark.asyncio
async def test_session_detail_for_other_user(db, quiz_session):
    with pytest.raises(SessionNotFoundError):
        await SessionService(db).get_session_detail(quiz_session.id, "user-2")


@pytest.mark.asyncio
async def test_failed_score_commit_keeps_previous_attempt(db, sample_quiz, quiz_session):
    session_id = quiz_session.id
    service = SessionService(db)
    await service.submit_selected_options(session_id, "user-1", scenario_one(sample_quiz))

    failing_commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("database is gone")))
    with patch.object(db, "commit", failing_commit):
        with pytest.raises(StoreError) as exc:
            await service.submit_selected_options(
                session_id, "user-1", [AnswerSelection(sample_quiz.q[2], sample_quiz.opt[2][1])]
            )
    assert exc.value.message == "Failed to update quiz session score."

    assert len(await stored_selections(db, session_id)) == 3
    session = await reload_session(db, session_id)
    assert session.score == 2
    assert session.total_questions == 3


@pytest.mark.asyncio
async def test_failed_insert_keeps_previous_attempt(db, sample_quiz, quiz_session):
    session_id = quiz_session.id
    service = SessionService(db)
    await service.submit_selected_options(session_id, "user-1", scenario_one(sample_quiz))

    failing_flush = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))
    with patch.object(db, "flush", failing_flush):
        with pytest.raises(StoreError) as exc:
            await service.submit_selected_options(session_id, "user-1", scenario_one(sample_quiz))
    assert exc.value.message == "Failed to save selected options."

    assert len(await stored_selections(db, session_id)) == 3
    assert (await reload_session(db, session_id)).score == 2


@pytest.mark.asyncio
async def test_failed_reset_commit(db, sample_quiz, quiz_session):
    session_id = quiz_session.id
    service = SessionService(db)
    await service.submit_selected_options(session_id, "user-1", scenario_one(sample_quiz))

    failing_commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("database is gone")))
    with patch.object(db, "commit", failing_commit):
        with pytest.raises(StoreError) as exc:
            await service.submit_selected_options(session_id, "user-1", [])
    assert exc.value.message == "Failed to reset quiz session score."

    assert len(await stored_selections(db, session_id)) == 3
    assert (await reload_session(db, session_id)).score == 2
