"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

team_role = sa.Enum('ADMIN', 'MEMBER', name='teamrole')
billing_provider = sa.Enum('SELF', 'TEAM_OWNER', name='billingprovider')
invitation_status = sa.Enum('PENDING', 'ACCEPTED', 'REVOKED', 'EXPIRED', name='invitationstatus')


def upgrade() -> None:
    """Create users, teams, memberships, invitations and usage events."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('full_name', sa.String(256), nullable=True),
        sa.Column('email', sa.String(256), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(256), nullable=False),
        sa.Column('owner_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('parent_team_id', sa.Integer(), sa.ForeignKey('teams.id'), nullable=True),
        sa.Column('shared_balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_unlimited', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('external_subscription_ref', sa.String(128), nullable=True),
        sa.Column('default_rate_limit_rpm', sa.Integer(), nullable=True),
        sa.Column('default_monthly_limit_cents', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_teams_id', 'teams', ['id'])
    op.create_index('ix_teams_owner_id', 'teams', ['owner_id'])
    op.create_index('ix_teams_parent_team_id', 'teams', ['parent_team_id'])

    op.create_table(
        'team_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('team_id', sa.Integer(), sa.ForeignKey('teams.id'), nullable=False),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('role', team_role, nullable=False),
        sa.Column('monthly_limit_cents', sa.Integer(), nullable=True),
        sa.Column('rate_limit_rpm', sa.Integer(), nullable=True),
        sa.Column('current_month_spend_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('budget_reset_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('billing_provider', billing_provider, nullable=False),
        sa.Column('is_unlimited', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('external_subscription_ref', sa.String(128), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('current_month_spend_cents >= 0', name='ck_member_spend_non_negative'),
        sa.CheckConstraint(
            'monthly_limit_cents IS NULL OR monthly_limit_cents >= 0',
            name='ck_member_limit_non_negative',
        ),
        sa.CheckConstraint(
            'rate_limit_rpm IS NULL OR rate_limit_rpm >= 0',
            name='ck_member_rate_limit_non_negative',
        ),
    )
    op.create_index('ix_team_members_id', 'team_members', ['id'])
    op.create_index('ix_team_members_team_id', 'team_members', ['team_id'])

    op.create_table(
        'team_invitations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'team_id', sa.Integer(), sa.ForeignKey('teams.id', ondelete='SET NULL'), nullable=True
        ),
        sa.Column('invited_by_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('email', sa.String(256), nullable=False),
        sa.Column('role', team_role, nullable=False),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('status', invitation_status, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_by_id', sa.String(64), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_team_invitations_id', 'team_invitations', ['id'])
    op.create_index('ix_team_invitations_team_id', 'team_invitations', ['team_id'])
    op.create_index('ix_team_invitations_email', 'team_invitations', ['email'])
    op.create_index('ix_team_invitations_token', 'team_invitations', ['token'], unique=True)
    op.create_index(
        'uq_team_invitations_pending_email',
        'team_invitations',
        ['team_id', 'email'],
        unique=True,
        sqlite_where=sa.text("status = 'PENDING'"),
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        'usage_events',
        sa.Column('event_id', sa.String(128), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column(
            'member_id',
            sa.Integer(),
            sa.ForeignKey('team_members.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column(
            'team_id', sa.Integer(), sa.ForeignKey('teams.id', ondelete='SET NULL'), nullable=True
        ),
        sa.Column('cost_cents', sa.Integer(), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_usage_events_user_id', 'usage_events', ['user_id'])


def downgrade() -> None:
    """Drop every table created by upgrade."""
    op.drop_table('usage_events')
    op.drop_table('team_invitations')
    op.drop_table('team_members')
    op.drop_table('teams')
    op.drop_table('users')
    invitation_status.drop(op.get_bind(), checkfirst=True)
    billing_provider.drop(op.get_bind(), checkfirst=True)
    team_role.drop(op.get_bind(), checkfirst=True)
