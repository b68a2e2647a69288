"""initial_schema

Revision ID: 5f3a9c21d7e4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5f3a9c21d7e4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM('PATIENT', 'THERAPIST', name='user_role', create_type=False)
message_role = postgresql.ENUM('USER', 'ASSISTANT', name='message_role', create_type=False)
consent_status = postgresql.ENUM(
    'PENDING', 'APPROVED', 'REJECTED', name='consent_status', create_type=False
)
sentiment = postgresql.ENUM(
    'POSITIVE', 'NEUTRAL', 'NEGATIVE', 'CONCERNING', name='sentiment', create_type=False
)
risk_level = postgresql.ENUM('LOW', 'MEDIUM', 'HIGH', name='risk_level', create_type=False)

ENUMS = (user_role, message_role, consent_status, sentiment, risk_level)


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
    ]
    if updated:
        columns.append(
            sa.Column(
                'updated_at',
                sa.DateTime(timezone=True),
                server_default=sa.text('now()'),
                nullable=False,
            )
        )
    return columns


def upgrade() -> None:
    """Create users, chats, messages, consents, analyses and reports."""
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('therapist_id', sa.UUID(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "role = 'PATIENT' OR therapist_id IS NULL",
            name='ck_users_only_patients_assigned',
        ),
        sa.ForeignKeyConstraint(['therapist_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_therapist_id', 'users', ['therapist_id'])
    op.create_index('ix_users_name_role', 'users', ['name', 'role'])

    op.create_table(
        'chats',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('patient_id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('therapist_guidance', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['patient_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_chats_patient_id', 'chats', ['patient_id'])
    op.create_index('ix_chats_patient_updated', 'chats', ['patient_id', 'updated_at'])

    op.create_table(
        'messages',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('chat_id', sa.UUID(), nullable=False),
        sa.Column('role', message_role, nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['chat_id'], ['chats.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_messages_chat_created', 'messages', ['chat_id', 'created_at'])

    op.create_table(
        'consents',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('chat_id', sa.UUID(), nullable=False),
        sa.Column('patient_id', sa.UUID(), nullable=False),
        sa.Column('status', consent_status, nullable=False),
        sa.Column(
            'requested_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "(status = 'PENDING') = (responded_at IS NULL)",
            name='ck_consents_responded_iff_decided',
        ),
        sa.ForeignKeyConstraint(['chat_id'], ['chats.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['patient_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chat_id', 'patient_id', name='uq_consents_chat_patient'),
    )
    op.create_index('ix_consents_patient_id', 'consents', ['patient_id'])

    op.create_table(
        'ai_analyses',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('chat_id', sa.UUID(), nullable=False),
        sa.Column('therapist_id', sa.UUID(), nullable=False),
        sa.Column('analysis', sa.Text(), nullable=False),
        sa.Column('predictions', sa.Text(), nullable=True),
        sa.Column('sentiment', sentiment, nullable=False),
        sa.Column('risk_level', risk_level, nullable=False),
        sa.Column('therapist_corrections', sa.Text(), nullable=True),
        sa.Column('corrected_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['chat_id'], ['chats.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['therapist_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'chat_id', 'therapist_id', name='uq_ai_analyses_chat_therapist'
        ),
    )
    op.create_index('ix_ai_analyses_therapist_id', 'ai_analyses', ['therapist_id'])

    op.create_table(
        'reports',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('therapist_id', sa.UUID(), nullable=False),
        sa.Column('patient_id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['therapist_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['patient_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_reports_therapist_created', 'reports', ['therapist_id', 'created_at']
    )


def downgrade() -> None:
    """Drop every table and enum type."""
    op.drop_table('reports')
    op.drop_table('ai_analyses')
    op.drop_table('consents')
    op.drop_table('messages')
    op.drop_table('chats')
    op.drop_table('users')

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
