"""baseline_clubhub_schema

Revision ID: 3f1c9a2d7e41
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c9a2d7e41'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'tiers',
        sa.Column('id', sa.TEXT(), primary_key=True),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('description', sa.TEXT(), nullable=True),
        sa.Column('users_limit', sa.INTEGER(), nullable=True),
        sa.Column('members_limit', sa.INTEGER(), nullable=True),
        sa.Column('sepa_enabled', sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column('reports_enabled', sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column('bank_import_enabled', sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'clubs',
        sa.Column('id', sa.TEXT(), primary_key=True),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('slug', sa.TEXT(), nullable=False, unique=True),
        sa.Column('description', sa.TEXT(), nullable=True),
        sa.Column('contact_email', sa.TEXT(), nullable=True),
        sa.Column('tier_id', sa.TEXT(), sa.ForeignKey('tiers.id'), nullable=True),
        sa.Column('deactivated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('deactivated_by', sa.TEXT(), nullable=True),
        sa.Column('grace_period_days', sa.INTEGER(), nullable=True),
        sa.Column('scheduled_deletion_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_clubs_deactivated', 'clubs', ['deactivated_at'])

    op.create_table(
        'users',
        sa.Column('id', sa.TEXT(), primary_key=True),
        sa.Column('email', sa.TEXT(), nullable=False, unique=True),
        sa.Column('name', sa.TEXT(), nullable=True),
        sa.Column('is_super_admin', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('idx_users_super_admin', 'users', ['is_super_admin'])

    op.create_table(
        'club_users',
        sa.Column('id', sa.TEXT(), primary_key=True),
        sa.Column('user_id', sa.TEXT(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('club_id', sa.TEXT(), sa.ForeignKey('clubs.id'), nullable=False),
        sa.Column('roles', sa.JSON(), nullable=False),
        sa.Column('status', sa.TEXT(), nullable=False, server_default='ACTIVE'),
        sa.Column('invited_by_id', sa.TEXT(), nullable=True),
        sa.Column('joined_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
    )
    op.create_index('idx_club_users_club_status', 'club_users', ['club_id', 'status'])
    # At most one ACTIVE membership per (user, club)
    op.create_index(
        'uq_club_users_active_membership',
        'club_users',
        ['user_id', 'club_id'],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
        sqlite_where=sa.text("status = 'ACTIVE'"),
    )

    op.create_table(
        'members',
        sa.Column('id', sa.TEXT(), primary_key=True),
        sa.Column('club_id', sa.TEXT(), sa.ForeignKey('clubs.id'), nullable=False),
        sa.Column('member_number', sa.TEXT(), nullable=True),
        sa.Column('first_name', sa.TEXT(), nullable=False),
        sa.Column('last_name', sa.TEXT(), nullable=False),
        sa.Column('email', sa.TEXT(), nullable=True),
        sa.Column('status', sa.TEXT(), nullable=False, server_default='ACTIVE'),
        sa.Column('sepa_mandate_reference', sa.TEXT(), nullable=True),
        sa.Column('anonymized_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('anonymized_by', sa.TEXT(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_members_club', 'members', ['club_id', 'last_name'])

    op.create_table(
        'ledger_accounts',
        sa.Column('id', sa.TEXT(), primary_key=True),
        sa.Column('club_id', sa.TEXT(), sa.ForeignKey('clubs.id'), nullable=False),
        sa.Column('code', sa.TEXT(), nullable=False),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('account_type', sa.TEXT(), nullable=False),
        sa.Column('balance_cents', sa.BIGINT(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('uq_ledger_accounts_club_code', 'ledger_accounts', ['club_id', 'code'], unique=True)

    op.create_table(
        'super_admin_bootstrap',
        sa.Column('slot', sa.TEXT(), primary_key=True),
        sa.Column('user_id', sa.TEXT(), nullable=False),
        sa.Column('claimed_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('super_admin_bootstrap')
    op.drop_index('uq_ledger_accounts_club_code', table_name='ledger_accounts')
    op.drop_table('ledger_accounts')
    op.drop_index('idx_members_club', table_name='members')
    op.drop_table('members')
    op.drop_index('uq_club_users_active_membership', table_name='club_users')
    op.drop_index('idx_club_users_club_status', table_name='club_users')
    op.drop_table('club_users')
    op.drop_index('idx_users_super_admin', table_name='users')
    op.drop_table('users')
    op.drop_index('idx_clubs_deactivated', table_name='clubs')
    op.drop_table('clubs')
    op.drop_table('tiers')
