"""Initial migration - profiles, weekly feedback, uploads, messages, audit log

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('age_range', sa.String(length=20), nullable=True),
        sa.Column('skin_type', sa.String(length=50), nullable=True),
        sa.Column('fitzpatrick_skin_tone', sa.Integer(), nullable=True),
        sa.Column('top_concerns', sa.JSON(), nullable=True),
        sa.Column('lifestyle', sa.JSON(), nullable=True),
        sa.Column('climate_exposure', sa.String(length=255), nullable=True),
        sa.Column('current_routine', sa.Text(), nullable=True),
        sa.Column('known_sensitivities', sa.Text(), nullable=True),
        sa.Column('image_consent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('data_use_consent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cohort_name', sa.String(length=100), nullable=True),
        sa.Column('participation_status', sa.String(length=50), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_index('ix_profiles_user_id', 'profiles', ['user_id'])
    op.create_index('idx_profile_admin', 'profiles', ['is_admin'])
    op.create_index('idx_profile_status', 'profiles', ['participation_status'])

    # One entry per participant per week; the unique constraint backs the 409 on resubmission
    op.create_table(
        'focus_group_feedback',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('profile_id', sa.String(length=36), nullable=False),
        sa.Column('week_number', sa.Integer(), nullable=False),
        sa.Column('product_usage', sa.Text(), nullable=True),
        sa.Column('perceived_changes', sa.Text(), nullable=True),
        sa.Column('concerns_or_issues', sa.Text(), nullable=True),
        sa.Column('emotional_response', sa.Text(), nullable=True),
        sa.Column('next_week_focus', sa.Text(), nullable=True),
        sa.Column('overall_rating', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('profile_id', 'week_number', name='uq_feedback_profile_week'),
        sa.CheckConstraint('week_number >= 1 AND week_number <= 12', name='ck_feedback_week_range'),
        sa.CheckConstraint(
            'overall_rating IS NULL OR (overall_rating >= 1 AND overall_rating <= 10)',
            name='ck_feedback_rating_range'
        )
    )
    op.create_index('ix_focus_group_feedback_profile_id', 'focus_group_feedback', ['profile_id'])

    op.create_table(
        'focus_group_uploads',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('profile_id', sa.String(length=36), nullable=False),
        sa.Column('week_number', sa.Integer(), nullable=False),
        sa.Column('storage_key', sa.String(length=512), nullable=False),
        sa.Column('original_filename', sa.String(length=255), nullable=True),
        sa.Column('content_type', sa.String(length=100), nullable=False, server_default='image/jpeg'),
        sa.Column('size_bytes', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('consent_given', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('verified_by_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('storage_key'),
        sa.CheckConstraint('week_number >= 1 AND week_number <= 52', name='ck_upload_week_range')
    )
    op.create_index('idx_upload_profile_week', 'focus_group_uploads', ['profile_id', 'week_number'])

    op.create_table(
        'focus_group_messages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sender_id', sa.String(length=255), nullable=False),
        sa.Column('recipient_id', sa.String(length=255), nullable=False),
        sa.Column('sender_role', sa.String(length=20), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_message_sender', 'focus_group_messages', ['sender_id'])
    op.create_index('idx_message_recipient_unread', 'focus_group_messages', ['recipient_id', 'sender_role', 'is_read'])
    op.create_index('idx_message_created', 'focus_group_messages', ['created_at'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('resource_type', sa.String(length=50), nullable=True),
        sa.Column('resource_id', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_audit_logs_created_at', table_name='audit_logs')
    op.drop_index('ix_audit_logs_action', table_name='audit_logs')
    op.drop_index('ix_audit_logs_user_id', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('idx_message_created', table_name='focus_group_messages')
    op.drop_index('idx_message_recipient_unread', table_name='focus_group_messages')
    op.drop_index('idx_message_sender', table_name='focus_group_messages')
    op.drop_table('focus_group_messages')

    op.drop_index('idx_upload_profile_week', table_name='focus_group_uploads')
    op.drop_table('focus_group_uploads')

    op.drop_index('ix_focus_group_feedback_profile_id', table_name='focus_group_feedback')
    op.drop_table('focus_group_feedback')

    op.drop_index('idx_profile_status', table_name='profiles')
    op.drop_index('idx_profile_admin', table_name='profiles')
    op.drop_index('ix_profiles_user_id', table_name='profiles')
    op.drop_table('profiles')
