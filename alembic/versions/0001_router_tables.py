"""Router Tables

Revision ID: 0001_router_tables
Revises:
Create Date: 2026-10-19

Creates the router tables:
- projects: External projects that can claim phone numbers
- contacts: WhatsApp users and their project routing state
- conversations: One per contact
- messages: Inbound/outbound messages keyed by provider message ID
"""

from alembic import op
import sqlalchemy as sa

revision = '0001_router_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # =========================================================================
    # PROJECTS
    # =========================================================================

    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('api_url', sa.String(500), nullable=True),
        sa.Column('user_numbers_api_url', sa.String(500), nullable=True),
        sa.Column('api_key', sa.Text(), nullable=True),
        sa.Column('external_api_key', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_api_key', name='uq_projects_external_api_key')
    )

    # =========================================================================
    # CONTACTS
    # =========================================================================

    op.create_table(
        'contacts',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('wa_id', sa.String(32), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('custom_name', sa.String(255), nullable=True),
        sa.Column('project_id', sa.Integer(), nullable=True),
        sa.Column('pending_project_selection', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('available_project_ids', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('wa_id', name='uq_contacts_wa_id')
    )

    # =========================================================================
    # CONVERSATIONS
    # =========================================================================

    op.create_table(
        'conversations',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('contact_id', sa.String(36), nullable=False),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('unread_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['contact_id'], ['contacts.id']),
        sa.UniqueConstraint('contact_id', name='uq_conversations_contact_id')
    )
    op.create_index('idx_conversations_last_message', 'conversations', ['last_message_at'])

    # =========================================================================
    # MESSAGES
    # =========================================================================

    op.create_table(
        'messages',
        sa.Column('id', sa.String(128), nullable=False),
        sa.Column('conversation_id', sa.String(36), nullable=False),
        sa.Column('contact_id', sa.String(36), nullable=False),
        sa.Column('direction', sa.String(10), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reply_to_id', sa.String(128), nullable=True),
        sa.Column('text_body', sa.Text(), nullable=True),
        sa.Column('caption', sa.Text(), nullable=True),
        sa.Column('media_id', sa.String(128), nullable=True),
        sa.Column('media_mime_type', sa.String(128), nullable=True),
        sa.Column('media_filename', sa.String(255), nullable=True),
        sa.Column('media_local_path', sa.String(500), nullable=True),
        sa.Column('is_voice', sa.Boolean(), nullable=True),
        sa.Column('is_animated', sa.Boolean(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('reaction_emoji', sa.String(32), nullable=True),
        sa.Column('template_header', sa.Text(), nullable=True),
        sa.Column('template_footer', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id']),
        sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'])
    )
    op.create_index('idx_messages_conversation_timestamp', 'messages', ['conversation_id', 'timestamp'])
    op.create_index('idx_messages_contact', 'messages', ['contact_id'])


def downgrade():
    op.drop_table('messages')
    op.drop_table('conversations')
    op.drop_table('contacts')
    op.drop_table('projects')
