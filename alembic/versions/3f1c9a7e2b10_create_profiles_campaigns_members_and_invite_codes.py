"""Create profiles, campaigns, campaign_members and invite_codes tables

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-02-14 18:20:11.402317

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the four campaign tables.

    - profiles: one row per identity-provider user, unique username
    - campaigns: owned by a profile, opaque JSONB game state
    - campaign_members: (campaign, user) -> role, cascades with the campaign
    - invite_codes: globally unique codes with a use cap, expiry and revocation
    """
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('account_type', sa.String(), nullable=False, server_default='player'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint("account_type in ('gm', 'player')", name='ck_profiles_account_type'),
    )
    op.create_index('ix_profiles_id', 'profiles', ['id'])
    op.create_index('ix_profiles_username', 'profiles', ['username'], unique=True)

    op.create_table(
        'campaigns',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('owner_user_id', sa.String(), sa.ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('data', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_campaigns_id', 'campaigns', ['id'])
    op.create_index('ix_campaigns_owner_user_id', 'campaigns', ['owner_user_id'])

    op.create_table(
        'campaign_members',
        sa.Column('campaign_id', sa.String(), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint("role in ('gm', 'player')", name='ck_campaign_members_role'),
    )
    op.create_index('ix_campaign_members_user_id', 'campaign_members', ['user_id'])

    op.create_table(
        'invite_codes',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('campaign_id', sa.String(), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('role_to_grant', sa.String(), nullable=False, server_default='player'),
        sa.Column('created_by_user_id', sa.String(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('max_uses', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('used_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint("role_to_grant in ('player', 'gm')", name='ck_invite_codes_role_to_grant'),
        sa.CheckConstraint('max_uses > 0', name='ck_invite_codes_max_uses'),
        sa.CheckConstraint('used_count >= 0', name='ck_invite_codes_used_count'),
        sa.CheckConstraint('used_count <= max_uses', name='ck_invite_codes_capacity'),
    )
    op.create_index('ix_invite_codes_id', 'invite_codes', ['id'])
    op.create_index('ix_invite_codes_code', 'invite_codes', ['code'], unique=True)
    op.create_index('ix_invite_codes_campaign_id', 'invite_codes', ['campaign_id'])


def downgrade() -> None:
    """Drop the campaign tables, children first."""
    op.drop_table('invite_codes')
    op.drop_table('campaign_members')
    op.drop_table('campaigns')
    op.drop_table('profiles')
