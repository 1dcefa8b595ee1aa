"""club_visibility_and_access_requests

- clubs.visibility (PUBLIC | PRIVATE) and clubs.invite_code
- access_requests: join requests for PUBLIC clubs

Revision ID: 8b2e6d4f1a93
Revises: 3f1c9a2d7e41
Create Date: 2026-10-19 14:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8b2e6d4f1a93'
down_revision = '3f1c9a2d7e41'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        'clubs',
        sa.Column('visibility', sa.TEXT(), nullable=False, server_default='PRIVATE'),
    )
    op.add_column('clubs', sa.Column('invite_code', sa.TEXT(), nullable=True))
    op.create_index('uq_clubs_invite_code', 'clubs', ['invite_code'], unique=True)

    op.create_table(
        'access_requests',
        sa.Column('id', sa.TEXT(), primary_key=True),
        sa.Column('user_id', sa.TEXT(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('club_id', sa.TEXT(), sa.ForeignKey('clubs.id'), nullable=False),
        sa.Column('message', sa.TEXT(), nullable=True),
        sa.Column('status', sa.TEXT(), nullable=False, server_default='PENDING'),
        sa.Column('rejection_reason', sa.TEXT(), nullable=True),
        sa.Column('rejection_note', sa.TEXT(), nullable=True),
        sa.Column('processed_by_id', sa.TEXT(), nullable=True),
        sa.Column('processed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_access_requests_club_status', 'access_requests', ['club_id', 'status'])
    op.create_index('idx_access_requests_user_status', 'access_requests', ['user_id', 'status'])


def downgrade() -> None:
    op.drop_index('idx_access_requests_user_status', table_name='access_requests')
    op.drop_index('idx_access_requests_club_status', table_name='access_requests')
    op.drop_table('access_requests')
    op.drop_index('uq_clubs_invite_code', table_name='clubs')
    op.drop_column('clubs', 'invite_code')
    op.drop_column('clubs', 'visibility')
