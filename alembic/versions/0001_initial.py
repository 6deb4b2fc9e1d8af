"""Initial tables: users, calendars, events, reminders

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-16 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), primary_key=True, comment="User ID issued by the identity provider"),
        sa.Column('email', sa.String(length=255), nullable=True, comment="User email"),
        sa.Column('name', sa.String(length=128), nullable=True, comment="User display name"),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'calendars',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_calendars_user_id', ondelete='CASCADE'),
    )
    op.create_index('ix_calendars_user_id', 'calendars', ['user_id'])
    # At most one default calendar per user.
    op.create_index(
        'uq_calendars_one_default_per_user',
        'calendars',
        ['user_id'],
        unique=True,
        sqlite_where=sa.text('is_default'),
        postgresql_where=sa.text('is_default'),
    )

    op.create_table(
        'events',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('calendar_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('recurrence_rule', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['calendar_id'], ['calendars.id'], name='fk_events_calendar_id', ondelete='CASCADE'),
    )
    op.create_index('ix_events_calendar_id', 'events', ['calendar_id'])
    op.create_index('ix_events_start_time', 'events', ['start_time'])
    op.create_index('ix_events_end_time', 'events', ['end_time'])

    op.create_table(
        'reminders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.String(length=36), nullable=False),
        sa.Column('minutes_before', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], name='fk_reminders_event_id', ondelete='CASCADE'),
        sa.CheckConstraint('minutes_before >= 0', name='ck_reminders_minutes_before_non_negative'),
    )
    op.create_index('ix_reminders_id', 'reminders', ['id'])
    op.create_index('ix_reminders_event_id', 'reminders', ['event_id'])


def downgrade() -> None:
    op.drop_index('ix_reminders_event_id', table_name='reminders')
    op.drop_index('ix_reminders_id', table_name='reminders')
    op.drop_table('reminders')

    op.drop_index('ix_events_end_time', table_name='events')
    op.drop_index('ix_events_start_time', table_name='events')
    op.drop_index('ix_events_calendar_id', table_name='events')
    op.drop_table('events')

    op.drop_index('uq_calendars_one_default_per_user', table_name='calendars')
    op.drop_index('ix_calendars_user_id', table_name='calendars')
    op.drop_table('calendars')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
