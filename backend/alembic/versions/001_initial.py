"""Initial database schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    ]


def _pii(name: str, nullable: bool = True) -> list[sa.Column]:
    # AES-GCM ciphertext plus its 32-byte blind index
    return [
        sa.Column(f'{name}_enc', sa.Text(), nullable=nullable),
        sa.Column(f'{name}_idx', sa.LargeBinary(32), nullable=nullable),
    ]


def upgrade() -> None:
    # Users table - the tenant boundary
    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        *_pii('email'),
        sa.Column('public_slug', sa.String(100), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        # One account per normalized email, across the platform
        sa.UniqueConstraint('email_idx', name='uq_users_email_idx'),
        sa.UniqueConstraint('public_slug', name='uq_users_public_slug'),
    )

    # Profiles table - self-declared public fields, plain text
    op.create_table(
        'profiles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('slug', sa.String(100), nullable=True),
        sa.Column('label', sa.String(100), nullable=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('headline', sa.String(255), nullable=True),
        sa.Column('company', sa.String(255), nullable=True),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('email_public', sa.String(255), nullable=True),
        sa.Column('phone_public', sa.String(50), nullable=True),
        sa.Column('website_url', sa.String(500), nullable=True),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('slug', name='uq_profiles_slug'),
    )
    op.create_index('ix_profiles_user_id', 'profiles', ['user_id'])
    op.create_index('ix_profiles_user_default', 'profiles', ['user_id', 'is_default'])

    # Contacts table
    op.create_table(
        'contacts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('linked_user_id', sa.UUID(), nullable=True),
        *_pii('full_name', nullable=False),
        *_pii('email'),
        *_pii('phone'),
        *_pii('company'),
        *_pii('position'),
        *_pii('linkedin'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['linked_user_id'], ['users.id'], ondelete='SET NULL'),
        # Email is unique within a tenant, not globally
        sa.UniqueConstraint('user_id', 'email_idx', name='uq_contacts_user_id_email_idx'),
    )
    op.create_index('ix_contacts_user_id', 'contacts', ['user_id'])
    op.create_index('ix_contacts_user_id_phone_idx', 'contacts', ['user_id', 'phone_idx'])
    op.create_index('ix_contacts_user_id_linked_user_id', 'contacts', ['user_id', 'linked_user_id'])

    # Interactions table - child of contacts
    op.create_table(
        'interactions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('contact_id', sa.UUID(), nullable=False),
        sa.Column('summary_enc', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_interactions_user_id', 'interactions', ['user_id'])
    op.create_index('ix_interactions_contact_id', 'interactions', ['contact_id'])

    # Leads table - matched across tenants by blind index
    op.create_table(
        'leads',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('owner_id', sa.UUID(), nullable=False),
        sa.Column('contact_id', sa.UUID(), nullable=True),
        sa.Column('email_idx', sa.LargeBinary(32), nullable=True),
        sa.Column('phone_idx', sa.LargeBinary(32), nullable=True),
        *_pii('linkedin'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('claimed_by_user_id', sa.UUID(), nullable=True),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['claimed_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.CheckConstraint("status IN ('PENDING', 'CLAIMED')", name='ck_leads_status'),
    )
    op.create_index('ix_leads_owner_id', 'leads', ['owner_id'])
    op.create_index('ix_leads_status_email_idx', 'leads', ['status', 'email_idx'])
    op.create_index('ix_leads_status_phone_idx', 'leads', ['status', 'phone_idx'])
    op.create_index('ix_leads_status_linkedin_idx', 'leads', ['status', 'linkedin_idx'])
    op.create_index('ix_leads_owner_id_linkedin_idx', 'leads', ['owner_id', 'linkedin_idx'])

    # Tags
    op.create_table(
        'tags',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('created_by', sa.String(10), nullable=False, server_default='user'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'slug', name='uq_tags_user_id_slug'),
    )
    op.create_index('ix_tags_user_id', 'tags', ['user_id'])

    op.create_table(
        'tag_aliases',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('tag_id', sa.UUID(), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_tag_aliases_tag_id', 'tag_aliases', ['tag_id'])
    op.create_index('ix_tag_aliases_slug', 'tag_aliases', ['slug'])

    op.create_table(
        'contact_tags',
        sa.Column('contact_id', sa.UUID(), nullable=False),
        sa.Column('tag_id', sa.UUID(), nullable=False),
        sa.Column('assigned_by', sa.String(10), nullable=False, server_default='user'),
        sa.PrimaryKeyConstraint('contact_id', 'tag_id'),
        sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], ondelete='CASCADE'),
    )


def downgrade() -> None:
    op.drop_table('contact_tags')
    op.drop_table('tag_aliases')
    op.drop_table('tags')
    op.drop_table('leads')
    op.drop_table('interactions')
    op.drop_table('contacts')
    op.drop_table('profiles')
    op.drop_table('users')
