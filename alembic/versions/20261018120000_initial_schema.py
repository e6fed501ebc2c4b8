"""initial quiz engine schema

Revision ID: 20261018120000
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, user_state, questions, answer_log and leaderboard tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'user_state',
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('current_difficulty', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_score', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('correct_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('wrong_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('confidence', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_question_id', sa.String(length=36), nullable=True),
        sa.Column('last_answer_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_decay_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('state_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id'),
    )

    op.create_table(
        'questions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('difficulty', sa.Integer(), nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('choices', sa.JSON(), nullable=False),
        sa.Column('correct_answer_hash', sa.String(length=64), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint('difficulty BETWEEN 1 AND 10', name='ck_question_difficulty'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_questions_difficulty'), 'questions', ['difficulty'], unique=False)

    op.create_table(
        'answer_log',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('question_id', sa.String(length=36), nullable=False),
        sa.Column('difficulty', sa.Integer(), nullable=False),
        sa.Column('correct', sa.Boolean(), nullable=False),
        sa.Column('score_delta', sa.Integer(), nullable=False),
        sa.Column('streak_at_answer', sa.Integer(), nullable=False),
        sa.Column('confidence_after', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_answer_log_user_id'), 'answer_log', ['user_id'], unique=False)
    op.create_index('idx_answer_user_time', 'answer_log', ['user_id', 'answered_at'], unique=False)
    op.create_index('idx_answer_user_difficulty', 'answer_log', ['user_id', 'difficulty'], unique=False)

    op.create_table(
        'leaderboard_score',
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('total_score', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id'),
    )
    op.create_index('idx_leaderboard_score_score', 'leaderboard_score', ['total_score'], unique=False)

    op.create_table(
        'leaderboard_streak',
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('max_streak', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id'),
    )
    op.create_index('idx_leaderboard_streak_streak', 'leaderboard_streak', ['max_streak'], unique=False)


def downgrade() -> None:
    """Drop every quiz engine table."""
    op.drop_index('idx_leaderboard_streak_streak', table_name='leaderboard_streak')
    op.drop_table('leaderboard_streak')
    op.drop_index('idx_leaderboard_score_score', table_name='leaderboard_score')
    op.drop_table('leaderboard_score')
    op.drop_index('idx_answer_user_difficulty', table_name='answer_log')
    op.drop_index('idx_answer_user_time', table_name='answer_log')
    op.drop_index(op.f('ix_answer_log_user_id'), table_name='answer_log')
    op.drop_table('answer_log')
    op.drop_index(op.f('ix_questions_difficulty'), table_name='questions')
    op.drop_table('questions')
    op.drop_table('user_state')
    op.drop_table('users')
