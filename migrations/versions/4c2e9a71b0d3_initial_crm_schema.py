"""Initial CRM schema

Users, unified applications, legacy request tables, lead notes,
messages, social links and the audit log.

Revision ID: 4c2e9a71b0d3
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c2e9a71b0d3'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
    ]


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='guest'),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('password_reset_token', sa.String(length=255), nullable=True),
        sa.Column('password_reset_expires', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_users_password_reset_token', 'users', ['password_reset_token'])

    op.create_table('applications_crm',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('application_type', sa.String(length=20), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=50), nullable=True),
        sa.Column('email_address', sa.String(length=255), nullable=False),
        sa.Column('location', sa.String(length=300), nullable=True),
        sa.Column('form_source', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='new'),
        sa.Column('additional_data', sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_applications_crm_user_id', 'applications_crm', ['user_id'])
    op.create_index('ix_applications_crm_created_at', 'applications_crm', ['created_at'])

    op.create_table('buy_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=50), nullable=False),
        sa.Column('buying_budget', sa.String(length=100), nullable=False),
        sa.Column('preferred_area', sa.String(length=200), nullable=False),
        sa.Column('lead_status', sa.String(length=50), nullable=False, server_default='new'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_buy_requests_user_id', 'buy_requests', ['user_id'])

    op.create_table('sell_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=50), nullable=False),
        sa.Column('home_address', sa.String(length=300), nullable=False),
        sa.Column('lead_status', sa.String(length=50), nullable=False, server_default='new'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_sell_requests_user_id', 'sell_requests', ['user_id'])

    op.create_table('work_with_me_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('location', sa.String(length=200), nullable=False),
        sa.Column('age', sa.String(length=10), nullable=False),
        sa.Column('skill', sa.String(length=200), nullable=False),
        sa.Column('skill_level', sa.String(length=20), nullable=False),
        sa.Column('lead_status', sa.String(length=50), nullable=False, server_default='new'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_work_with_me_requests_user_id', 'work_with_me_requests', ['user_id'])

    op.create_table('lead_notes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('lead_id', sa.String(length=36), nullable=False),
        sa.Column('lead_type', sa.String(length=20), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_lead_notes_lead_id', 'lead_notes', ['lead_id'])

    op.create_table('messages',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sender_id', sa.String(length=36), nullable=False),
        sa.Column('recipient_id', sa.String(length=36), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_from_admin', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        *_timestamps(),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id']),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_messages_sender_id', 'messages', ['sender_id'])
    op.create_index('ix_messages_recipient_id', 'messages', ['recipient_id'])

    op.create_table('social_links',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('url', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('audit_events',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('actor_user_id', sa.String(length=36), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['actor_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_events_created_at', 'audit_events', ['created_at'])
    op.create_index('ix_audit_events_action', 'audit_events', ['action'])
    op.create_index('ix_audit_events_actor_user_id', 'audit_events', ['actor_user_id'])


def downgrade():
    op.drop_index('ix_audit_events_actor_user_id', table_name='audit_events')
    op.drop_index('ix_audit_events_action', table_name='audit_events')
    op.drop_index('ix_audit_events_created_at', table_name='audit_events')
    op.drop_table('audit_events')
    op.drop_table('social_links')
    op.drop_index('ix_messages_recipient_id', table_name='messages')
    op.drop_index('ix_messages_sender_id', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_lead_notes_lead_id', table_name='lead_notes')
    op.drop_table('lead_notes')
    op.drop_index('ix_work_with_me_requests_user_id', table_name='work_with_me_requests')
    op.drop_table('work_with_me_requests')
    op.drop_index('ix_sell_requests_user_id', table_name='sell_requests')
    op.drop_table('sell_requests')
    op.drop_index('ix_buy_requests_user_id', table_name='buy_requests')
    op.drop_table('buy_requests')
    op.drop_index('ix_applications_crm_created_at', table_name='applications_crm')
    op.drop_index('ix_applications_crm_user_id', table_name='applications_crm')
    op.drop_table('applications_crm')
    op.drop_index('ix_users_password_reset_token', table_name='users')
    op.drop_table('users')
