"""initial quiz, session and selected option tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1b2c3d4e5f6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'quizzes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_quizzes_created_by', 'quizzes', ['created_by'])
    op.create_index('ix_quizzes_created_at', 'quizzes', ['created_at'])

    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_index', sa.Integer(), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('question_translation', sa.Text(), nullable=False, server_default=''),
        sa.Column('explanation', sa.Text(), nullable=False, server_default=''),
        sa.Column('answer_index', sa.Integer(), nullable=False),
        sa.UniqueConstraint('quiz_id', 'question_index', name='uq_questions_quiz_index'),
    )
    op.create_index('ix_questions_quiz_id', 'questions', ['quiz_id'])

    op.create_table(
        'options',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('option_index', sa.Integer(), nullable=False),
        sa.Column('option', sa.Text(), nullable=False),
        sa.Column('option_translation', sa.Text(), nullable=False, server_default=''),
        sa.Column('option_explanation', sa.Text(), nullable=False, server_default=''),
        sa.UniqueConstraint('question_id', 'option_index', name='uq_options_question_index'),
    )
    op.create_index('ix_options_question_id', 'options', ['question_id'])

    op.create_table(
        'quiz_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id'), nullable=False),
        # NULL score = not graded; total_questions is a creation-time snapshot
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('total_questions', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_quiz_sessions_user_id', 'quiz_sessions', ['user_id'])
    op.create_index('ix_quiz_sessions_quiz_id', 'quiz_sessions', ['quiz_id'])
    op.create_index('ix_quiz_sessions_created_at', 'quiz_sessions', ['created_at'])

    op.create_table(
        'selected_options',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_session_id', sa.Integer(), sa.ForeignKey('quiz_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('questions.id'), nullable=False),
        sa.Column('option_id', sa.Integer(), sa.ForeignKey('options.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('quiz_session_id', 'question_id', name='uq_selected_options_session_question'),
    )
    op.create_index('ix_selected_options_quiz_session_id', 'selected_options', ['quiz_session_id'])


def downgrade() -> None:
    op.drop_table('selected_options')
    op.drop_table('quiz_sessions')
    op.drop_table('options')
    op.drop_table('questions')
    op.drop_table('quizzes')
