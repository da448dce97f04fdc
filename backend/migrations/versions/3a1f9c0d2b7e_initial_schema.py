"""initial schema: users, moods, meditations, therapists, bookings, symptom checks, notification outbox

Revision ID: 3a1f9c0d2b7e
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3a1f9c0d2b7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigIntPK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'therapists',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('specialization', sa.String(), nullable=False),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('email', sa.String(), nullable=False),
    )
    op.create_index('ix_therapists_name', 'therapists', ['name'])

    op.create_table(
        'meditations',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('audio_url', sa.Text(), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'moods',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('mood_level', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('mood_level between 1 and 5', name='ck_moods_level'),
    )
    op.create_index('idx_moods_user_time', 'moods', ['user_id', 'created_at'])

    op.create_table(
        'bookings',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('therapist_id', sa.BigInteger(), sa.ForeignKey('therapists.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('booking_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('jitsi_room_code', sa.String(), nullable=False, unique=True),
        sa.Column('status', sa.String(), nullable=False, server_default='scheduled'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status in ('scheduled','completed','cancelled')", name='ck_bookings_status'),
    )
    op.create_index('idx_bookings_user_date', 'bookings', ['user_id', 'booking_date'])
    op.create_index('idx_bookings_therapist', 'bookings', ['therapist_id'])

    op.create_table(
        'symptom_checks',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('symptoms', sa.Text(), nullable=False),
        sa.Column('ai_response', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('idx_symptom_checks_user', 'symptom_checks', ['user_id'])

    op.create_table(
        'booking_notifications',
        sa.Column('id', BigIntPK, primary_key=True),
        sa.Column('booking_id', sa.BigInteger(), sa.ForeignKey('bookings.id', ondelete='SET NULL'), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='PENDING'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('next_attempt_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status in ('PENDING','SENT','FAILED')", name='ck_booking_notifications_status'),
    )
    op.create_index('idx_booking_notifications_due', 'booking_notifications', ['status', 'next_attempt_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('booking_notifications')
    op.drop_table('symptom_checks')
    op.drop_table('bookings')
    op.drop_table('moods')
    op.drop_table('meditations')
    op.drop_table('therapists')
    op.drop_table('users')
